"""Debloat Agent - package lifecycle reconciliation for Android devices over adb."""

try:
    from debloat_agent._version import version as __version__
except ImportError:
    __version__ = "0.0.0.dev0"
