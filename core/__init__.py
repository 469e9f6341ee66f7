"""
Core processing modules for spending reports and subscription detection.

This package contains:
- aggregation: Report filtering pipeline and aggregations
- classifier: Transfer / asset-allocation / income / expense classification
- config: Application configuration and settings
- db: sqlite transaction store
- exceptions: Custom exception classes
- lexicon: Keyword tables for classification and detection
- logger: Logging configuration
- matching: Service-name normalization and fuzzy description matching
- normalize: Value normalization and calendar helpers
- recurrence: Recurring-payment detection
- schema: Pydantic models for data validation
"""
