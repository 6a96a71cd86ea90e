"""
*mswells*

Per-timestep numerical state of multi-segment wells for reservoir simulation.
"""

from ._precision import *  # noqa
from .constants import *  # noqa
from .config import *  # noqa
from .errors import *  # noqa
from .types import *  # noqa
from .wells import *  # noqa
from .states import *  # noqa

__version__ = "0.1.0"
