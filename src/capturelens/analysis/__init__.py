"""
Frame diagnostics: blur/exposure gates and lighting classification.
"""

from capturelens.analysis.frame_quality import (
    LightingMonitor,
    LightingReading,
    LightingStatus,
    QualityReport,
    assess_frame_quality,
    classify_lighting,
)

__all__ = [
    "LightingMonitor",
    "LightingReading",
    "LightingStatus",
    "QualityReport",
    "assess_frame_quality",
    "classify_lighting",
]
