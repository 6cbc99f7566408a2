"""Timezone-safe availability core for scheduling group sessions."""

__version__ = "0.1.0"
