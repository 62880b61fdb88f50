"""Shared DynamoDB utilities.

This package centralizes:
- boto3 resource configuration
- retry/backoff policy for throttled calls
- typed errors for consistent HTTP problem responses
"""
