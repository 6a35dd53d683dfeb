"""
Text recognition contract and the sidecar-file recognizer.
"""

from .recognizer import OCRError, RecognizedText, SidecarTextRecognizer, TextRecognizer

__all__ = [
    "OCRError",
    "RecognizedText",
    "SidecarTextRecognizer",
    "TextRecognizer",
]
