"""
Ingestion — text extraction, chunking, and embedding.

Turns uploaded files (Markdown, HTML, DOCX, PPTX, XLSX, PDF, …) into
embedded chunks ready for the vector store.
"""
