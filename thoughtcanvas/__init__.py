"""ThoughtCanvas - an infinite canvas for AI-assisted mind maps."""

__version__ = "0.3.0"
__app_id__ = "io.github.thoughtcanvas.ThoughtCanvas"
