"""Exceptions raised by the splitter. All of them abort the run."""


class SplitterError(Exception):
    """Base class for fatal splitter errors."""


class ConfigurationError(SplitterError):
    """Malformed invocation or invalid option value."""


class InputError(SplitterError):
    """The input dataset cannot be opened or has no usable layer."""


class GeometryTypeError(InputError):
    """The input layer holds something other than lines or multi-lines."""


class DriverNotFoundError(SplitterError):
    """No output driver is registered under the requested name."""


class SinkError(SplitterError):
    """Creating, declaring, writing or committing to the output failed."""
