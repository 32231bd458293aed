"""vms -- violation correlation across source revisions.

Decides which runtime-verification violations of the current run are new and
which are re-detections of known violations whose line merely moved.
"""

__version__ = "0.3.0"
