from __future__ import annotations

import base64
from typing import Any, Dict

import numpy as np

_PAYLOAD_KEYS = ("b64", "dtype", "shape", "order")


def bytes_to_b64_str(b: bytes) -> str:
    """
    Encode raw bytes into a base64 ASCII string (JSON-safe).
    """
    return base64.b64encode(b).decode("ascii")


def b64_str_to_bytes(s: str) -> bytes:
    """
    Decode a base64 ASCII string back into raw bytes.
    """
    return base64.b64decode(s.encode("ascii"), validate=True)


def ndarray_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize a host ndarray into a JSON-safe payload.

    The raw C-order bytes are stored together with the exact dtype string
    (including byte order), so decoding reproduces the array bit for bit.

    Returns
    -------
    dict
        ``{"b64": "<base64>", "dtype": "<f4", "shape": [...], "order": "C"}``
    """
    a = np.asarray(arr)
    return {
        "b64": bytes_to_b64_str(a.tobytes(order="C")),
        "dtype": a.dtype.str,
        "shape": [int(s) for s in a.shape],
        "order": "C",
    }


def payload_to_ndarray(payload: Dict[str, Any]) -> np.ndarray:
    """
    Deserialize a payload produced by `ndarray_to_payload`.

    Raises
    ------
    ValueError
        If the payload is missing a key, uses an unsupported memory order, or
        the decoded byte count does not match ``dtype`` and ``shape``.
    """
    missing = [k for k in _PAYLOAD_KEYS if k not in payload]
    if missing:
        raise ValueError(f"Array payload is missing keys: {missing}")
    if str(payload["order"]) != "C":
        raise ValueError(f"Unsupported array payload order: {payload['order']!r}")

    raw = b64_str_to_bytes(str(payload["b64"]))
    dtype = np.dtype(str(payload["dtype"]))
    shape = tuple(int(s) for s in payload["shape"])

    expected = int(np.prod(shape, dtype=np.int64)) * dtype.itemsize
    if len(raw) != expected:
        raise ValueError(
            f"Array payload size mismatch: got {len(raw)} bytes, "
            f"expected {expected} for shape={shape} dtype={dtype.str}"
        )

    # frombuffer is a read-only view on `raw`; copy into an owning array
    return np.frombuffer(raw, dtype=dtype).reshape(shape).copy(order="C")
