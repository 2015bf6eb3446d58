"""
Logger wrapper for ipsw_lite.

All components receive an IpswLiteLogger and report through `log(message, level)`.
"""

import inspect
import logging
from datetime import datetime

from pydantic import BaseModel


class LogLine(BaseModel):
    """
    Represents a line in the ipsw_lite log
    """

    time: str
    level: str
    caller_file: str
    caller_name: str
    caller_line: int
    message: str


class IpswLiteLogger:
    """
    Logger class
    """

    def __init__(self, name: str = "ipsw_lite") -> None:
        self.logger = logging.getLogger(name)

    def log(self, debug_message: str, level: int) -> None:
        """
        Log the message at the given level, tagged with the caller's location.
        """
        if not self.logger.isEnabledFor(level):
            return

        debug_message = debug_message.replace("\n", " ")

        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        if caller is not None:
            caller_file = caller.f_code.co_filename.split("/")[-1]
            caller_name = caller.f_code.co_name
            caller_line = caller.f_lineno
        else:
            caller_file, caller_name, caller_line = "", "", 0

        line = LogLine(
            time=str(datetime.now()),
            level=logging.getLevelName(level),
            caller_file=caller_file,
            caller_name=caller_name,
            caller_line=caller_line,
            message=debug_message,
        )
        self.logger.log(level=level, msg=line.model_dump_json())
