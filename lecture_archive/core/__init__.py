"""Core representation, segmentation and transcript file modules.

WHY: The core package holds the pieces every other stage depends on:
the Token/Segment dataclasses, the segment builder, and the reader and
writer for the transcript files produced by the transcribe step.

RULES:
- Nothing in core performs network or database I/O
- The segment builder stays pure; storage is the caller's concern
"""
