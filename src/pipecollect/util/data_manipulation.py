import logging
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

KeyLike = Union[None, str, Callable[[Any], Any]]


def extract_property(data: Any, prop_list: str, fail_on_missing=False, default=None) -> Any:
    """Extract a property from a nested data structure using dot notation.

    Args:
        data (Any): The data structure to extract the property from
        prop_list (str): The property to extract, using dot notation for nested properties.
            The special character '_' can be used as a passthrough in dotted paths.
            For example, "X._" is equivalent to "X", and "X._.1" is equivalent to "X.1".
        fail_on_missing (bool): If True, raise an exception if the property is not found
            If False, return default if the property is not found
        default: Value returned for a missing property when fail_on_missing is False
    """
    if prop_list == "_":
        return data
    of_interest = data
    for prop_name in prop_list.split("."):
        # Treat '_' as a passthrough/no-op in dotted paths
        if prop_name == "_":
            continue
        if isinstance(of_interest, dict):
            if prop_name in of_interest:
                of_interest = of_interest[prop_name]
                continue
        elif isinstance(of_interest, (list, tuple)):
            if prop_name.isdigit() and 0 <= int(prop_name) < len(of_interest):
                of_interest = of_interest[int(prop_name)]
                continue
        elif hasattr(of_interest, prop_name):
            prop_actual = getattr(of_interest, prop_name)
            of_interest = prop_actual() if callable(prop_actual) else prop_actual
            continue
        if fail_on_missing:
            raise AttributeError(f"Property '{prop_name}' not found in the input data of type '{type(data)}'")
        return default
    return of_interest


def key_getter(key: KeyLike, fail_on_missing: bool = False) -> Callable[[Any], Any]:
    """Turn a key specification into a function of one item.

    None selects the item itself, a string is a dotted property path and a
    callable is used as-is.
    """
    if key is None:
        return lambda item: item
    if callable(key):
        return key
    if isinstance(key, str):
        return lambda item: extract_property(item, key, fail_on_missing=fail_on_missing)
    raise TypeError(f"Key must be None, a property path or a callable, got {type(key).__name__}")


def to_number(value: Any, default: Optional[float] = 0) -> Optional[float]:
    """Coerce a value to a number, returning default for values that are not numeric."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Treating non-numeric value {value!r} as {default}")
        return default
