"""
Markdown Workflow (wf) - Document collections with lifecycle stages

Manages collections of markdown documents with:
- Workflow-defined lifecycle stages mirrored on disk
- Status transitions with an append-only history
- Template-based document creation (notes, cover letters, posts)
- Diagram-as-code rendering (Graphviz, PlantUML, Mermaid)
- Emoji shortcode expansion and pandoc output formats
"""

__version__ = "0.1.0"
__package_name__ = "markdown-workflow"
__short_name__ = "wf"
