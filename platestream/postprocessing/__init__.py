"""Post-processing subsystem - hypothesis selection, normalization and plate matching."""
from platestream.postprocessing.AlternativeSelector import select_best_alternative
from platestream.postprocessing.PlateAccumulator import PlateAccumulator
from platestream.postprocessing.TranscriptNormalizer import TranscriptNormalizer

__all__ = ['PlateAccumulator', 'TranscriptNormalizer', 'select_best_alternative']
