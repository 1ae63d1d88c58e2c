"""mneme: spaced-repetition scheduling and retention estimation."""

from mneme.consts import VERSION

__version__ = VERSION
