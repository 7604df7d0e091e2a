"""SlideTheory - archetype-driven slide export to PowerPoint and PNG."""

__version__ = "0.1.0"
