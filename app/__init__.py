"""Event photo gallery service.

Guests upload photos and videos into event galleries; owners download
the whole gallery as a single streamed ZIP archive.
"""

__version__ = "1.0.0"
