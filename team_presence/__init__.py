"""Team presence: match scheduling and attendance tracking API."""

__version__ = "0.1.0"
