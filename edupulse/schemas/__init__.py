from .student import *  # noqa: F401,F403
from .attendance import *  # noqa: F401,F403
from .insights import *  # noqa: F401,F403
from .common import ErrorResponse  # noqa: F401
