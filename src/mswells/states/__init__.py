from .base import *  # noqa
from .continuation import *  # noqa
from .guesses import *  # noqa
from .topology import *  # noqa
