"""Plant and alert synchronization services."""
