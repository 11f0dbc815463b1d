"""
Pydantic request and response models, one module per domain, plus the
shared ``ApiResponse`` envelope in ``common``.
"""
