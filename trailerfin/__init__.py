"""Keep trailer .strm files in a media library pointing at fresh IMDb video links."""

__version__ = "1.1.0"