"""Field normalizer — builds the output record from a decoded GELF message."""

TIMESTAMP_KEY = "timestamp"


def strip_one_underscore(key: str) -> str:
    """Remove a single leading underscore: ``_a`` -> ``a``, ``__b`` -> ``_b``."""
    if len(key) > 1 and key.startswith("_"):
        return key[1:]
    return key


def normalize_fields(message: dict, strip_leading_underscore: bool = True,
                     remove_timestamp: bool = True) -> dict:
    """Return a new record dict; *message* is left untouched.

    Only top-level key names change. When stripping makes two keys collide,
    the one appearing later in *message* wins.
    """
    record = {}
    for key, value in message.items():
        if remove_timestamp and key == TIMESTAMP_KEY:
            continue
        name = strip_one_underscore(key) if strip_leading_underscore else key
        if remove_timestamp and name == TIMESTAMP_KEY:
            continue
        record[name] = value
    return record
