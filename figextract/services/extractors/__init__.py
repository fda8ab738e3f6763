"""Extractors Package"""
from figextract.services.extractors.candidate_detector import CandidateRegionDetector, FigureCandidate
from figextract.services.extractors.text_density import TextDensityEstimator
from figextract.services.extractors.graphical_content import GraphicalContentDetector
from figextract.services.extractors.classification import ClassificationPolicy
from figextract.services.extractors.figure_extractor import FigureExtractor

__all__ = [
    'CandidateRegionDetector',
    'FigureCandidate',
    'TextDensityEstimator',
    'GraphicalContentDetector',
    'ClassificationPolicy',
    'FigureExtractor'
]
