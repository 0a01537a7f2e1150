"""Speech recognizer boundary."""
from platestream.asr.Recognizer import NullRecognizer, StreamingRecognizer, load_recognizer

__all__ = ['NullRecognizer', 'StreamingRecognizer', 'load_recognizer']
