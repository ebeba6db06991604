"""String-keyed configuration shared by the KSG calculators.

Property names are case-insensitive and treat ``_`` and ``-`` alike, so
``AUTO_EMBED_METHOD`` and ``auto-embed-method`` address the same entry.
"""

from enum import Enum

from .errors import ConfigurationError

# Orchestrator / AIS level properties
PROP_ALGORITHM = "algorithm-select"
PROP_AUTO_EMBED_METHOD = "auto-embed-method"
PROP_K_SEARCH_MAX = "k-search-max"
PROP_TAU_SEARCH_MAX = "tau-search-max"
PROP_RAGWITZ_NUM_NNS = "ragwitz-neighbor-count"
PROP_AUTO_EMBED_N_JOBS = "auto-embed-n-jobs"

# Embedding parameters
PROP_K_HISTORY = "k-history"
PROP_K_TAU = "k-tau"
PROP_L_HISTORY = "l-history"
PROP_L_TAU = "l-tau"
PROP_DELAY = "delay"
PROP_TAU = "tau"

# Conditional MI estimator properties
PROP_K = "k"
PROP_NORMALISE = "normalise"
PROP_NOISE_LEVEL = "noise-level-to-add"
PROP_NOISE_SEED = "noise-seed"

ALIASES = {
    "alg-num": PROP_ALGORITHM,
    "auto-embed-k-search-max": PROP_K_SEARCH_MAX,
    "auto-embed-tau-search-max": PROP_TAU_SEARCH_MAX,
    "auto-embed-ragwitz-num-nns": PROP_RAGWITZ_NUM_NNS,
    "normalize": PROP_NORMALISE,
}

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def canonical_name(name):
    """Map a user-supplied property name onto its canonical spelling."""
    if not isinstance(name, str):
        raise ConfigurationError(f"Property names must be strings, got {name!r}")
    key = name.strip().lower().replace("_", "-")
    return ALIASES.get(key, key)


class AutoEmbedMethod(Enum):
    """How the embedding parameters are chosen when observations are finalised."""

    NONE = "NONE"
    RAGWITZ = "RAGWITZ"
    RAGWITZ_DEST_ONLY = "RAGWITZ_DEST_ONLY"
    MAX_CORR_AIS = "MAX_CORR_AIS"
    MAX_CORR_AIS_DEST_ONLY = "MAX_CORR_AIS_DEST_ONLY"
    MAX_CORR_AIS_AND_TE = "MAX_CORR_AIS_AND_TE"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown auto-embedding method {value!r}; expected one of {valid}"
            ) from None

    @property
    def uses_ragwitz(self):
        return self in (AutoEmbedMethod.RAGWITZ, AutoEmbedMethod.RAGWITZ_DEST_ONLY)

    @property
    def embeds_source(self):
        return self in (
            AutoEmbedMethod.RAGWITZ,
            AutoEmbedMethod.MAX_CORR_AIS,
            AutoEmbedMethod.MAX_CORR_AIS_AND_TE,
        )


def parse_int_property(name, value, minimum=None, allow_zero=True):
    """Parse ``value`` as an int, raising ConfigurationError on failure."""
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if minimum is not None and parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    if not allow_zero and parsed == 0:
        raise ConfigurationError(f"{name} must be non-zero")
    return parsed


def parse_float_property(name, value, minimum=None):
    try:
        parsed = float(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if minimum is not None and parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


def parse_bool_property(name, value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


class PropertyBag:
    """Ordered record of ``(name, value)`` property assignments.

    Names are stored in canonical form. Re-assigning a name updates its
    value but keeps the position of the first assignment, so replaying the
    bag onto a fresh estimator applies properties in the order the caller
    first set them.
    """

    def __init__(self, items=()):
        self._items = []
        for name, value in items:
            self.set(name, value)

    def set(self, name, value):
        key = canonical_name(name)
        for i, (existing, _) in enumerate(self._items):
            if existing == key:
                self._items[i] = (key, value)
                return
        self._items.append((key, value))

    def get(self, name, default=None):
        key = canonical_name(name)
        for existing, value in self._items:
            if existing == key:
                return value
        return default

    def items(self):
        return list(self._items)

    def copy(self):
        return PropertyBag(self._items)

    def without(self, *names):
        """Return a copy with the given names removed."""
        drop = {canonical_name(n) for n in names}
        return PropertyBag((k, v) for k, v in self._items if k not in drop)

    def replay(self, target):
        """Apply every recorded assignment to ``target.set_property`` in order."""
        for name, value in self._items:
            target.set_property(name, value)

    def __contains__(self, name):
        key = canonical_name(name)
        return any(existing == key for existing, _ in self._items)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __repr__(self):
        return f"PropertyBag({self._items!r})"
