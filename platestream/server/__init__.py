"""Server side of the streaming protocol: per-connection sessions and WAV persistence."""
