"""
Core infrastructure for the Tubely backend.

- auth: bearer token extraction and HS256 JWT validation
- database: MongoDB async client (Motor) with connection pooling
- storage: S3-compatible object storage client (boto3)
- context: the service context handed to request handlers
- upload_limits: request body ceilings for the upload routes
"""
