"""Audio capture sources producing raw int16 PCM chunks."""
