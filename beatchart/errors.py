class CharterError(Exception):
    """Base class for every failure raised by the chart pipeline."""


# ------------------------------
# Audio loading
# ------------------------------
class UnsupportedFormat(CharterError):
    pass


class DecodeError(CharterError):
    pass


class EmptySignal(CharterError):
    pass


# ------------------------------
# Analysis
# ------------------------------
class NoBeatsDetected(CharterError):
    """No peaks were found and no BPM override was given, so there is no grid."""


class InvalidLaneCount(CharterError, ValueError):
    pass


class InvalidConfig(CharterError, ValueError):
    pass


# ------------------------------
# Export
# ------------------------------
class ChartIOError(CharterError, OSError):
    pass
