"""
Storyreel - AI-assisted video storyboarding toolkit.

Turns storyboard scenes into an editable single-track timeline: range
selection and block splitting, drag reordering, playback with audio
alignment, concurrent narration/visual fill-in, and FCPXML export.
"""

__version__ = "0.1.0"
