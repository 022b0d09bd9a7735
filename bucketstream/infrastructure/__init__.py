"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Presigning for S3, R2 and Minio (boto3, minio)
- http: The outbound fetch of presigned URLs (httpx)

These wrappers translate library failures into our domain errors.
"""
