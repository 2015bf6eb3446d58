"""
ipsw_lite builds reduced firmware restore archives by pulling only the files one
device needs out of a remote IPSW with HTTP range requests.
"""

from ipsw_lite.ipsw_lite import IpswLite
from ipsw_lite.ipsw_lite_config import IpswLiteConfig
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger

__all__ = ["IpswLite", "IpswLiteConfig", "IpswLiteLogger"]
