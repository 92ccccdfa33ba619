"""
OrangeAd Service Control - remote service orchestration for fleet hosts.

This package starts, stops and restarts named services on managed hosts over a
text-based remote command channel and keeps a cached status record in sync
with what the hosts report.
"""

__version__ = "1.0.0"
__author__ = "OrangeAd Team - Tam Nhu (Kai) Tran"
__email__ = "tam@orangead.com"
