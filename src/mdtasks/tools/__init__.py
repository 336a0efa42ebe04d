from .task_tools import register_task_tools
from .time_tools import register_time_tools

__all__ = ["register_task_tools", "register_time_tools"]
