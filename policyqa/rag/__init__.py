"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Fixed-size text chunking
- Embedding encoding and vector byte codec
- Cosine similarity retrieval
- Prompt construction
- Reconciling model answers with source chunks
"""
