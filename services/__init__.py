"""
Service layer for business logic.

This package contains the collaborator contracts and the service classes
that orchestrate store access, currency conversion, report aggregation
and subscription detection.
"""
