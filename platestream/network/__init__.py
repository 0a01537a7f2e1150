"""Wire protocol: control envelopes and binary PCM frames."""
