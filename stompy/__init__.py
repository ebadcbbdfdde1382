from importlib.metadata import distribution

from . import config, core  # noqa: F401
from .cancel import (  # noqa: F401
    CancellationRequested,
    CancellationToken,
    cancel_on_interrupt,
)
from .core import DegenerateInputError, InternalFaultError  # noqa: F401
from .mparray import mparray  # noqa: F401
from .stomp import stomp, stomped  # noqa: F401

# Shadows the `stompy.mass` submodule and so must be imported last
from .mass import mass  # noqa: F401  # isort: skip

try:
    _dist = distribution("stompy")
except ModuleNotFoundError:  # pragma: no cover
    __version__ = "Please install this project with setup.py"
else:  # pragma: no cover
    __version__ = _dist.version
