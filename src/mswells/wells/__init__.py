from .aggregation import *  # noqa
from .base import *  # noqa
from .controls import *  # noqa
