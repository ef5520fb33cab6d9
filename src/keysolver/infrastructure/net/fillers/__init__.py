"""
Parameter filler public API.

Importing this package registers every built-in filler (``constant``,
``gaussian``, ``xavier``, ``xavier_normal``) with the `Filler` registry via
import side effects.
"""

from ._constants import *
from ._xavier import *
from ._base import Filler, fan_in_and_fan_out

__all__ = [
    Filler.__name__,
    fan_in_and_fan_out.__name__,
]
