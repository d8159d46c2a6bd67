"""
GitHub → Notion Push

Pushes Markdown documents from a git repository to the Notion pages named
in their frontmatter, keeping each page's properties and body in step
with the source file.
"""

__version__ = "1.0.0"
