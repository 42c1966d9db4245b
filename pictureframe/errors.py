class FrameError(Exception):
    pass


class ConfigError(FrameError):
    """Settings or environment that cannot be parsed into a usable value."""


class PinError(FrameError):
    pass


class PictureError(FrameError):
    pass
