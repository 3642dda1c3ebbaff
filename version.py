"""
version.py — Single source of truth for the application version and branding.

History:
  v1.0.0 — Speech-down / speech-up / whisper pill bubbles with anchored
            tails, thought clouds with dots, shout starbursts, captions
            and text-only overlays; rich text with bold / italic /
            underline / strikethrough / size / family / colour runs.
  v1.1.0 — Per-row safe text zones sampled from the outline; auto-fit
            font size; tails stay pinned to their edge while resizing;
            project files (JSON, schema "1.1"); 2× raster export.
"""

__version__    = "1.1.0"
__app_name__   = "Bubble Overlay Editor"
__org_name__   = "Long Weekend Labs"
__copyright__  = "© 2026 Long Weekend Labs"
PROJECT_SCHEMA = "1.1"
