"""
Infrastructure layer - external service integrations.

- snowflake: Database connections
- documents: Document store (Snowflake VARIANT table or in-memory)
- repositories: Translation between domain models and documents
"""
