"""
Review index services.

- Validator: Field constraints for reviews and queries
- Bulk Parser: Normalizes bulk upload envelopes into review inputs
- Ingestion Coordinator: Single and bulk inserts with position assignment
- Search Coordinator: Query validation, ranking and response assembly
"""
