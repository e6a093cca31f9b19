from .id_generator import generate_id
from .logging import get_logger, setup_logging
from .time_utils import elapsed_ms, utc_now

__all__ = [
    "generate_id",
    "get_logger",
    "setup_logging",
    "elapsed_ms",
    "utc_now",
]
