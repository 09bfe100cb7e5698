"""vitalscore: recovery, strain, sleep and illness signals from daily health data."""

__version__ = "0.1.0"
