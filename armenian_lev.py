import argparse
import logging
import sys
from dataclasses import dataclass, field
from types import MappingProxyType

import numpy as np

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

LOGFORMAT = '%(levelname)s:%(filename)s:%(lineno)d:%(message)s'

# Placeholder letter for insertions and deletions
GAP = '-'

# Cost categories, in cost table order
EQUAL = 0
INSERT_DELETE = 1
MISMATCH = 2
CASE_MISMATCH = 3
VOCALIC = 4
PREFIX = 5
SUFFIX = 6

N_CATEGORIES = 7

# Default costs:
#   equal, insert/delete, mismatch,
#   case mismatch, vocalic equivalence, prefix add/drop, suffix add/drop
REFC_START = np.array([0, 1, 1, 0.25, 0.5, 0.5, 1])  # there may be a prefix
REFC_MID = np.array([0, 1, 1, 0.25, 0.5, 1, 1])      # mid-word: no pre/suffix
REFC_END = np.array([0, 1, 1, 0.25, 0.5, 1, 0.5])    # there may be a suffix
for _refc in (REFC_START, REFC_MID, REFC_END):
    _refc.setflags(write=False)
del _refc


class ConfigurationError(ValueError):
    """Malformed orthography or cost configuration."""


class CostTableError(ConfigurationError):
    """Cost tables are neither one 7-entry table nor three of them."""


class MissingTargetError(ValueError):
    """A source string was given without anything to compare it to."""


@dataclass(frozen=True)
class Orthography:
    """
    Letter data the cost classifier needs for one alphabet.

    :param prefix_letters: letters whose add/drop counts as a grammatical prefix
    :param suffix_letters: letters whose add/drop counts as a grammatical suffix
    :param vocalic_equivalence: {letter: (letter, ...)} of interchangeable lowercase letters
    :param case_fold_offset: code point distance from an uppercase letter to its lowercase
    :param alphabet_range: (low, high) code points of the uppercase letters,
        inclusive, or None for no case folding
    """
    prefix_letters: frozenset = frozenset()
    suffix_letters: frozenset = frozenset()
    vocalic_equivalence: MappingProxyType = field(default_factory=dict, hash=False)
    case_fold_offset: int = 0
    alphabet_range: tuple = None

    def __post_init__(self):
        if isinstance(self.case_fold_offset, bool) or \
                not isinstance(self.case_fold_offset, int):
            raise ConfigurationError(
                "case fold offset %r is not an integer" % (self.case_fold_offset,))
        if self.alphabet_range is not None:
            try:
                bounds = tuple(self.alphabet_range)
            except TypeError:
                raise ConfigurationError(
                    "alphabet range %r is not [low, high]" % (self.alphabet_range,))
            if len(bounds) != 2:
                raise ConfigurationError("alphabet range must be [low, high]")
            low, high = (_code_point(c) for c in bounds)
            if low > high:
                raise ConfigurationError(
                    "alphabet range %r is reversed" % (self.alphabet_range,))
            object.__setattr__(self, 'alphabet_range', (low, high))
        object.__setattr__(self, 'prefix_letters', frozenset(self.prefix_letters))
        object.__setattr__(self, 'suffix_letters', frozenset(self.suffix_letters))
        object.__setattr__(self, 'vocalic_equivalence', MappingProxyType(
            {k: tuple(v) for k, v in dict(self.vocalic_equivalence).items()}))

    @classmethod
    def from_options(cls, options):
        """
        Builds an orthography from an options mapping such as
        {'prefixLetters': ..., 'suffixLetters': ..., 'vocalicEquivalence': ...,
         'caseFoldOffset': ..., 'alphabetRange': [low, high]}.
        Missing options keep their defaults.
        """
        unknown = set(options) - set(_OPTION_NAMES)
        if unknown:
            raise ConfigurationError(
                "unknown orthography options: %s" % ", ".join(sorted(unknown)))
        return cls(**{_OPTION_NAMES[k]: v for k, v in options.items()})

    def fold_case(self, letter):
        """Lowercases a letter of this alphabet; anything else is returned as is."""
        if self.alphabet_range is None or len(letter) != 1:
            return letter
        low, high = self.alphabet_range
        cp = ord(letter)
        if low <= cp <= high:
            return chr(cp + self.case_fold_offset)
        return letter


_OPTION_NAMES = {
    'prefixLetters': 'prefix_letters',
    'suffixLetters': 'suffix_letters',
    'vocalicEquivalence': 'vocalic_equivalence',
    'caseFoldOffset': 'case_fold_offset',
    'alphabetRange': 'alphabet_range',
}


def _code_point(c):
    if isinstance(c, str):
        if len(c) != 1:
            raise ConfigurationError("range bound %r is not a single letter" % c)
        return ord(c)
    if isinstance(c, bool) or not isinstance(c, int):
        raise ConfigurationError("range bound %r is not a code point" % (c,))
    return c


ARMENIAN = Orthography(
    prefix_letters='զցյ',
    suffix_letters='նսդք',
    vocalic_equivalence={
        'բ': 'պ',
        'գ': 'քկ',
        'դ': 'տ',
        'ե': 'է',
        'է': 'ե',
        'թ': 'տ',
        'լ': 'ղ',
        'կ': 'գք',
        'ղ': 'լ',
        'ո': 'օ',
        'պ': 'բփ',
        'ռ': 'ր',
        'վ': 'ւ',
        'տ': 'դթ',
        'ր': 'ռ',
        'ւ': 'վ',
        'փ': 'պֆ',
        'ք': 'գկ',
        'օ': 'ո',
        'ֆ': 'փ',
    },
    case_fold_offset=48,
    alphabet_range=(0x531, 0x556),
)


def classify_category(x, y, orthography=ARMENIAN):
    """
    Returns the cost category (EQUAL ... SUFFIX) for aligning letter x with
    letter y. Either may be GAP.
    """
    if x == y:
        return EQUAL
    fold = orthography.fold_case
    x = fold(x)
    y = fold(y)
    if x == y:
        return CASE_MISMATCH

    if x == GAP or y == GAP:
        other = y if x == GAP else x
        if other in orthography.prefix_letters:
            return PREFIX
        if other in orthography.suffix_letters:
            return SUFFIX
        return INSERT_DELETE

    if y in orthography.vocalic_equivalence.get(x, ()):
        return VOCALIC
    return MISMATCH


def classify_cost(x, y, table, orthography=ARMENIAN):
    """
    Cost of aligning letter x with letter y under a 7-entry cost table.

    :param x: a letter or GAP
    :param y: a letter or GAP
    :param table: 7 costs indexed by category
    """
    return table[classify_category(x, y, orthography)]


def resolve_cost_tables(tables=None):
    """
    Expands a cost table argument into (start, middle, end) tables.

    :param tables: None for the defaults, one 7-entry table for every
        position, or three of them (start, middle, end)
    """
    if tables is None:
        return REFC_START, REFC_MID, REFC_END
    try:
        arr = np.asarray(tables, dtype=float)
    except (TypeError, ValueError) as e:
        raise CostTableError(
            "must pass either one or three cost tables of %d numbers: %s"
            % (N_CATEGORIES, e)) from e

    if arr.shape == (N_CATEGORIES,):
        start = mid = end = arr
    elif arr.shape == (3, N_CATEGORIES):
        start, mid, end = arr
    else:
        raise CostTableError(
            "must pass either one or three cost tables of %d numbers, got shape %s"
            % (N_CATEGORIES, arr.shape))
    if np.isnan(arr).any() or (arr < 0).any():
        raise CostTableError("costs must be non-negative numbers")
    logger.debug("cost tables: start=%s mid=%s end=%s", start, mid, end)
    return start, mid, end


def _fill_grid(s, t, refc_start, refc_mid, refc_end, orthography):
    """
    Fills the (n+1, m+1) cost grid for one source/target pair. Both
    strings must be non-empty.
    """
    n = len(s)
    m = len(t)
    d = np.zeros((n + 1, m + 1), dtype=float)

    # Row 0 and column 0. The first letter against a blank may be a
    # prefix, so its cost is taken from the start table and scaled by the
    # index rather than summed letter by letter.
    first_s = classify_cost(GAP, s[0], refc_start, orthography)
    for i in range(1, n + 1):
        d[i, 0] = i * first_s
    first_t = classify_cost(t[0], GAP, refc_start, orthography)
    for j in range(1, m + 1):
        d[0, j] = j * first_t

    # Once either word has reached its last letter the end table stays in
    # force for every later cell of this pair.
    at_end = False
    for i in range(1, n + 1):
        s_i = s[i - 1]
        for j in range(1, m + 1):
            if i == n or j == m:
                at_end = True
            refc = refc_end if at_end else refc_mid
            t_j = t[j - 1]

            d[i, j] = min(
                d[i - 1, j] + classify_cost(s_i, GAP, refc, orthography),
                d[i, j - 1] + classify_cost(GAP, t_j, refc, orthography),
                d[i - 1, j - 1] + classify_cost(s_i, t_j, refc, orthography)
            )

    logger.debug("grid for %r / %r:\n%s", s, t, d)
    return d


def _empty_grid(n, m, refc_mid):
    """Grid for a pair where one string is empty: plain insert/delete costs."""
    d = np.zeros((n + 1, m + 1), dtype=float)
    d.flat[:] = np.arange(d.size) * refc_mid[INSERT_DELETE]
    return d


def distance_grid(source, target, tables=None, orthography=ARMENIAN):
    """
    Returns the full cost grid for one pair; the distance is its last cell.
    Either string being empty gives a 1x(m+1) or (n+1)x1 grid filled with
    plain insertion/deletion costs from the middle table.
    """
    refc_start, refc_mid, refc_end = resolve_cost_tables(tables)
    n = len(source)
    m = len(target)
    if not n or not m:
        return _empty_grid(n, m, refc_mid)
    return _fill_grid(source, target, refc_start, refc_mid, refc_end, orthography)


def distance_many(tables, source, targets, orthography=ARMENIAN):
    """
    Compares one source string against each target string.

    :param tables: cost tables as accepted by resolve_cost_tables, or None
    :param source: the reference string
    :param targets: sequence of strings to compare against source
    :return: list of distances, in the order of targets
    """
    refc_start, refc_mid, refc_end = resolve_cost_tables(tables)
    if isinstance(targets, str):
        raise TypeError("targets must be a sequence of strings, not a string; "
                        "use distance() for a single target")
    targets = list(targets)
    if not targets:
        raise MissingTargetError("second string is needed")

    n = len(source)
    result = []
    for t in targets:
        m = len(t)
        if not n or not m:
            d = _empty_grid(n, m, refc_mid)
        else:
            d = _fill_grid(source, t, refc_start, refc_mid, refc_end, orthography)
        result.append(float(d[n, m]))
    return result


def distance(source, target, tables=None, orthography=ARMENIAN):
    """
    Weighted Wagner-Fischer distance between two Armenian strings.

    >>> distance("ձեռն", "ձերն")
    0.5
    """
    return distance_many(tables, source, [target], orthography)[0]


wf = distance


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Weighted edit distance between Armenian words.")
    parser.add_argument("source", help="word to compare against")
    parser.add_argument("targets", nargs="+", metavar="target",
                        help="words to compare with the source")
    parser.add_argument("--costs", nargs=N_CATEGORIES, type=float, metavar="N",
                        help="one cost table used for start, middle and end: "
                             "equal, insert/delete, mismatch, case, vocalic, "
                             "prefix, suffix")
    for position in ("start", "mid", "end"):
        parser.add_argument("--costs-" + position, nargs=N_CATEGORIES,
                            type=float, metavar="N",
                            help="cost table for the %s of words; needs all "
                                 "three --costs-start/mid/end" % position)
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log the cost grids")
    args = parser.parse_args(argv)

    per_position = [args.costs_start, args.costs_mid, args.costs_end]
    tables = args.costs
    if any(t is not None for t in per_position):
        if tables is not None:
            parser.error("--costs cannot be combined with --costs-start/mid/end")
        if any(t is None for t in per_position):
            parser.error("--costs-start, --costs-mid and --costs-end go together")
        tables = per_position

    logging.basicConfig(format=LOGFORMAT,
                        level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        distances = distance_many(tables, args.source, args.targets)
    except CostTableError as e:
        parser.error(str(e))
    for target, dist in zip(args.targets, distances):
        print("%s\t%r" % (target, dist))
    return 0


if __name__ == "__main__":
    sys.exit(main())
