"""Tests for expense attachment uploads (S3 client mocked)."""
import io
import re
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from werkzeug.datastructures import FileStorage

from admin_edificios.exceptions import ValidationError, StoreError
from admin_edificios.services.storage_service import StorageService, build_object_name


def _file(content=b'%PDF-1.4 factura', filename='factura.pdf', content_type='application/pdf'):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=content_type)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def storage(app, s3_client):
    return StorageService(client=s3_client)


class TestObjectName:
    def test_layout(self):
        name = build_object_name('Factura UTE.PDF', now_ms=1700000000000)
        assert re.fullmatch(r'egresos/1700000000000-[a-z0-9]{6}\.pdf', name)

    def test_without_extension(self):
        assert build_object_name('comprobante', now_ms=1).endswith('.bin')


class TestStorageService:
    def test_upload_returns_public_url(self, storage, s3_client):
        url = storage.upload_attachment(_file())

        assert url.startswith('http://s3.test/archivos/egresos/')
        assert url.endswith('.pdf')
        args, kwargs = s3_client.upload_fileobj.call_args
        assert args[1] == 'archivos'
        assert args[2].startswith('egresos/')
        assert kwargs['ExtraArgs']['ContentType'] == 'application/pdf'

    def test_missing_file(self, storage):
        with pytest.raises(ValidationError, match="No se proporcionó ningún archivo"):
            storage.upload_attachment(None)

    def test_rejects_disallowed_type(self, storage):
        with pytest.raises(ValidationError, match="Tipo de archivo no permitido"):
            storage.upload_attachment(_file(filename='script.sh', content_type='text/x-sh'))

    def test_rejects_large_file(self, storage):
        storage.max_size = 10
        with pytest.raises(ValidationError, match="demasiado grande"):
            storage.upload_attachment(_file(content=b'x' * 11))

    def test_upload_failure_is_store_error(self, storage, s3_client):
        s3_client.upload_fileobj.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'PutObject'
        )
        with pytest.raises(StoreError, match="Error al subir archivo"):
            storage.upload_attachment(_file())

    def test_creates_missing_bucket(self, app):
        client = MagicMock()
        client.head_bucket.side_effect = ClientError({'Error': {'Code': '404'}}, 'HeadBucket')

        StorageService(client=client)

        client.create_bucket.assert_called_once_with(Bucket='archivos')

    def test_object_name_from_url(self, storage):
        url = storage.get_public_url('egresos/1-abc.pdf')
        assert storage.object_name_from_url(url) == 'egresos/1-abc.pdf'
        assert storage.object_name_from_url('https://otro.com/x.pdf') is None
