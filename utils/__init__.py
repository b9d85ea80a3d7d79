"""NetProbe Utils"""
from utils.logger     import get_logger, set_verbose, log
from utils.validators import validate_host, validate_port, sanitize_banner
from utils.constants  import PortState, Protocol, ScanType, TIMING_PROFILES
from utils.config     import ScanConfig, load_config, get_timing
from utils.errors     import (
    NetProbeError, InvalidSpec, PortParseError, TargetParseError,
    ConfigError, ResolutionFailure,
)
__all__ = ["get_logger", "set_verbose", "log", "validate_host", "validate_port",
           "sanitize_banner", "PortState", "Protocol", "ScanType",
           "TIMING_PROFILES", "ScanConfig", "load_config", "get_timing",
           "NetProbeError", "InvalidSpec", "PortParseError", "TargetParseError",
           "ConfigError", "ResolutionFailure"]
