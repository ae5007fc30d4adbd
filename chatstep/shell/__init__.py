__all__ = ["execute_script", "Success", "Failure", "SystemInfo", "collect_system_info"]

from .executor import Failure, Success, execute_script
from .sysinfo import SystemInfo, collect_system_info
