"""Solar vendor sync: plant and alert synchronization for solar-monitoring vendors."""

__version__ = "0.1.0"
