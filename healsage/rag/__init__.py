"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Document text extraction (PDF, DOCX, plain text)
- Sentence-based chunking with overlap
- In-memory vector storage with cosine similarity search
- Drive document ingestion
- Question answering with citations
"""
