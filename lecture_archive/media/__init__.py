"""Audio preparation (ffmpeg) for lecture recordings."""
