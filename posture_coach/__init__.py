"""
Pilates posture coach.

Scores body posture against reference Pilates forms from pre-computed pose
landmarks, frame by frame (real-time classification and feedback) or over a
whole recording (segmentation into exercises and a session report).
"""

__version__ = "0.1.0"
