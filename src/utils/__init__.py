"""
Utility modules for the review index.

Cross-cutting concerns:
- Embeddings: Generate embeddings for reviews and queries
"""
