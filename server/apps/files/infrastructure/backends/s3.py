"""Storage backend for S3-compatible object storage (AWS S3, MinIO, R2)."""

import logging
from pathlib import Path
from typing import Any, BinaryIO, Final, final, override

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.base import ContentFile
from django.core.files.base import File as DjangoFile
from storages.backends.s3 import S3Storage

from server.apps.files.exceptions import (
    NotFoundError,
    StorageConnectionError,
    StorageError,
    StorageWriteError,
)
from server.apps.files.infrastructure.backends.base import (
    ByteRange,
    ObjectStat,
    Payload,
    StorageBackend,
)

logger = logging.getLogger(__name__)

_MISSING_CODES: Final = frozenset((
    '404',
    'NoSuchKey',
    'NoSuchBucket',
    'NotFound',
))
# Regions where CreateBucket must not carry a location constraint
_DEFAULT_REGIONS: Final = frozenset(('us-east-1', 'auto', ''))


def _error_code(error: ClientError) -> str:
    return str(error.response.get('Error', {}).get('Code', ''))


@final
class S3Backend(StorageBackend):
    """Objects live under ``root_folder/`` in a single bucket.

    Bucket access goes through the thread-local boto3 resource that
    django-storages keeps per thread, so one backend instance can be
    shared by request handlers and background jobs.
    """

    name = 's3'

    def __init__(  # noqa: WPS211
        self,
        bucket_name: str,
        access_key: str,
        secret_key: str,
        *,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        root_folder: str = '',
        use_ssl: bool = True,
        addressing_style: str | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            bucket_name: Bucket holding the objects.
            access_key: Access key id.
            secret_key: Secret access key.
            endpoint_url: Custom endpoint (MinIO, R2), None for AWS.
            region_name: Region; 'auto' for providers without regions.
            root_folder: Prefix for every object key.
            use_ssl: Use TLS when talking to the endpoint.
            addressing_style: 'path' for MinIO, None for default.
        """
        self.bucket_name = bucket_name
        self.region_name = region_name or ''
        self.root_folder = root_folder.strip('/')
        self.storage = S3Storage(
            bucket_name=bucket_name,
            access_key=access_key,
            secret_key=secret_key,
            endpoint_url=endpoint_url,
            region_name=region_name,
            use_ssl=use_ssl,
            addressing_style=addressing_style,
            location=self.root_folder,
            file_overwrite=True,
            default_acl=None,
        )

    @override
    def login(self) -> None:
        """Verify the bucket, creating it when it does not exist.

        Raises:
            StorageConnectionError: If the endpoint is unreachable or
                the bucket cannot be created.
        """
        logger.info('Bucket: %s', self.bucket_name)
        client = self.storage.connection.meta.client
        try:
            client.head_bucket(Bucket=self.bucket_name)
        except ClientError as error:
            if _error_code(error) not in _MISSING_CODES:
                logger.exception('S3 connection failed')
                raise StorageConnectionError(
                    'Could not connect to object storage.',
                ) from error
            self._create_bucket(client)
        except BotoCoreError as error:
            logger.exception('S3 connection failed')
            raise StorageConnectionError(
                'Could not connect to object storage.',
            ) from error
        else:
            logger.info('Bucket exists: %s', self.bucket_name)

    @override
    def list(self) -> list[ObjectStat]:
        """List direct children of the root folder.

        Raises:
            StorageError: If the listing request fails.
        """
        prefix = self._prefix()
        objects = []
        try:
            for summary in self._bucket().objects.filter(Prefix=prefix):
                basename = summary.key[len(prefix):]
                if not basename or '/' in basename:
                    continue
                objects.append(ObjectStat(
                    filename=summary.key,
                    basename=basename,
                    size=summary.size,
                    last_modified=summary.last_modified,
                    etag=summary.e_tag.strip('"') if summary.e_tag else None,
                ))
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to list objects in %s', self.bucket_name)
            raise StorageError('Could not list objects.') from error
        return objects

    @override
    def put(self, name: str, data: Payload) -> None:
        """Upload an object, replacing any existing one.

        Raises:
            StorageWriteError: If the upload fails.
        """
        logger.info('Uploading file to storage: %s', name)
        try:
            if isinstance(data, Path):
                with data.open('rb') as source:
                    self.storage.save(name, DjangoFile(source, name=name))
            else:
                self.storage.save(name, ContentFile(data, name=name))
        except (BotoCoreError, ClientError, OSError) as error:
            logger.exception('Failed to upload file to storage: %s', name)
            raise StorageWriteError() from error
        logger.info('Successfully uploaded file: %s', name)

    @override
    def get(self, name: str, byte_range: ByteRange | None = None) -> BinaryIO:
        """Open an object stream, using a native S3 range request.

        Raises:
            NotFoundError: If the object does not exist.
            StorageError: If the request fails for another reason.
        """
        request: dict[str, str] = {}
        if byte_range is not None:
            request['Range'] = byte_range.header_value()
        try:
            response = self._bucket().Object(self._key(name)).get(**request)
        except ClientError as error:
            if _error_code(error) in _MISSING_CODES:
                raise NotFoundError(
                    f'File not found in object storage: {name}',
                ) from error
            logger.exception('Failed to get object stream for: %s', name)
            raise StorageError() from error
        except BotoCoreError as error:
            logger.exception('Failed to get object stream for: %s', name)
            raise StorageError() from error
        return response['Body']

    @override
    def remove(self, name: str) -> bool:
        logger.info('Deleting file from storage: %s', name)
        try:
            self.storage.delete(name)
        except (BotoCoreError, ClientError):
            # Cleanup is retried by the next reconciliation sweep
            logger.exception('Failed to delete file from storage: %s', name)
        else:
            logger.info('Successfully deleted file: %s', name)
        return True

    @override
    def get_metadata(self, name: str) -> ObjectStat | None:
        s3_object = self._bucket().Object(self._key(name))
        try:
            s3_object.load()
        except (BotoCoreError, ClientError):
            return None
        return ObjectStat(
            filename=s3_object.key,
            basename=name,
            size=s3_object.content_length,
            last_modified=s3_object.last_modified,
            etag=s3_object.e_tag.strip('"') if s3_object.e_tag else None,
        )

    def _create_bucket(self, client: Any) -> None:
        logger.info(
            '%s bucket does not exist. Creating bucket...',
            self.bucket_name,
        )
        request: dict[str, Any] = {'Bucket': self.bucket_name}
        if self.region_name not in _DEFAULT_REGIONS:
            request['CreateBucketConfiguration'] = {
                'LocationConstraint': self.region_name,
            }
        try:
            client.create_bucket(**request)
        except ClientError as error:
            if _error_code(error) == 'BucketAlreadyOwnedByYou':
                logger.warning(
                    'Bucket %s already exists and is owned by you',
                    self.bucket_name,
                )
                return
            logger.exception('Failed to create bucket %s', self.bucket_name)
            raise StorageConnectionError(
                'Could not create storage bucket.',
            ) from error
        logger.info('%s bucket successfully created.', self.bucket_name)

    def _bucket(self) -> Any:
        return self.storage.connection.Bucket(self.bucket_name)

    def _prefix(self) -> str:
        return f'{self.root_folder}/' if self.root_folder else ''

    def _key(self, name: str) -> str:
        return f'{self._prefix()}{name}'
