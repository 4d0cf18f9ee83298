"""Local file access for document and signature files."""
