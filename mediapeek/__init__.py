"""mediapeek: media ingestion, thumbnail cache and playback time sync for a preview tool."""

__version__ = "0.1.0"
