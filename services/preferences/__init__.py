"""HTTP service for editing prompt templates and configuration overlays."""
