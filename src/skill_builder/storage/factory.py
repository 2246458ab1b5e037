"""Factory for creating storage backends from repository configuration."""

import logging
from typing import Optional

from ..config import RepositoryConfig
from .local_storage import LocalStorageBackend
from .retry import RetryPolicy

log = logging.getLogger(__name__)


def create_remote_backend(
    repo_config: RepositoryConfig,
    retry_policy: Optional[RetryPolicy] = None,
):
    """Create an S3StorageBackend for the configured bucket.

    Credentials are never read from the config; boto3 resolves them from
    the environment, the shared credentials file or an instance role.

    Raises:
        ValueError: If no bucket is configured.
    """
    if not repo_config.has_remote():
        raise ValueError("No remote repository configured (missing bucket_name)")

    from .s3_storage import S3StorageBackend

    log.debug(
        "Creating S3 backend for bucket %s (region %s)",
        repo_config.bucket_name,
        repo_config.region,
    )
    return S3StorageBackend(
        bucket_name=repo_config.bucket_name,
        region=repo_config.region,
        endpoint_url=repo_config.endpoint,
        prefix=repo_config.prefix,
        retry_policy=retry_policy,
    )


def create_local_backend(repo_config: Optional[RepositoryConfig] = None) -> LocalStorageBackend:
    """Create a LocalStorageBackend rooted at the configured local repository path."""
    repo_config = repo_config or RepositoryConfig()
    root = repo_config.local_repo_path()
    log.debug("Using local repository at %s", root)
    return LocalStorageBackend(root)
