from ._atomic_write import read_json, write_json_atomic

__all__ = [
    read_json.__name__,
    write_json_atomic.__name__,
]
