"""Object storage backends used for public, private and staging documents."""

import logging
import os
import shutil

import requests

from courseware.errors import ObjectNotFound, StorageError

LOGGER = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 1024 * 1024


class ObjectStorage:
    """Narrow upload/download/delete interface over a storage zone.

    Keys are absolute paths ("/secured/<id>.pdf"). Public uploads get a
    browsable URL, private ones are only reachable through this interface.
    """

    def upload_public(self, data, key, content_type=None):
        self._put(data, key, content_type)
        return {'key': key, 'url': self.public_url(key)}

    def upload_private(self, data, key, content_type=None):
        self._put(data, key, content_type)
        return {'key': key}

    def download(self, key):
        return b''.join(self.download_stream(key))

    def public_url(self, key):
        raise NotImplementedError

    def download_stream(self, key):
        raise NotImplementedError

    def delete(self, key):
        raise NotImplementedError

    def exists(self, key):
        raise NotImplementedError

    def _put(self, data, key, content_type):
        raise NotImplementedError


class HttpObjectStorage(ObjectStorage):
    """Storage zone reached over an HTTP API (PUT/GET/DELETE with an access key)"""

    def __init__(self, api_url, zone, api_key, public_base_url='', timeout=120, session=None):
        self.api_url = api_url.rstrip('/')
        self.zone = zone
        self.api_key = api_key
        self.public_base_url = public_base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        adapter = requests.adapters.HTTPAdapter(max_retries=3)
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

    def _url(self, key):
        return f"{self.api_url}/{self.zone}/{key.lstrip('/')}"

    def _headers(self, content_type=None):
        headers = {'AccessKey': self.api_key}
        if content_type:
            headers['Content-Type'] = content_type
        return headers

    def public_url(self, key):
        return f"{self.public_base_url}/{key.lstrip('/')}"

    def _put(self, data, key, content_type):
        try:
            response = self.session.put(
                self._url(key),
                data=data,
                headers=self._headers(content_type or 'application/octet-stream'),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
        if response.status_code not in (200, 201):
            raise StorageError(f"Upload of {key} failed with HTTP {response.status_code}: {response.text}")
        LOGGER.info("Stored %s", key)

    def _get(self, key):
        try:
            response = self.session.get(self._url(key), headers=self._headers(),
                                        stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise StorageError(f"Download of {key} failed: {e}") from e
        if response.status_code == 404:
            response.close()
            raise ObjectNotFound(f"Object {key} not found")
        if response.status_code != 200:
            response.close()
            raise StorageError(f"Download of {key} failed with HTTP {response.status_code}")
        return response

    def download_stream(self, key):
        response = self._get(key)

        def generate():
            try:
                for chunk in response.iter_content(chunk_size=STREAM_CHUNK_SIZE):
                    if chunk:
                        yield chunk
            finally:
                response.close()

        return generate()

    def exists(self, key):
        try:
            self._get(key).close()
        except ObjectNotFound:
            return False
        return True

    def delete(self, key):
        try:
            response = self.session.delete(self._url(key), headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise StorageError(f"Delete of {key} failed: {e}") from e
        if response.status_code == 404:
            raise ObjectNotFound(f"Object {key} not found")
        if response.status_code not in (200, 204):
            raise StorageError(f"Delete of {key} failed with HTTP {response.status_code}")


class LocalObjectStorage(ObjectStorage):
    """Filesystem storage for development and tests"""

    def __init__(self, root, public_base_url='/storage'):
        self.root = os.path.abspath(root)
        self.public_base_url = public_base_url.rstrip('/')
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key):
        path = os.path.abspath(os.path.join(self.root, key.lstrip('/')))
        if os.path.commonpath([self.root, path]) != self.root:
            raise StorageError(f"Invalid storage key {key}")
        return path

    def public_url(self, key):
        return f"{self.public_base_url}/{key.lstrip('/')}"

    def _put(self, data, key, content_type):
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp_path = f"{path}.part"
        with open(tmp_path, 'wb') as f:
            if isinstance(data, (bytes, bytearray)):
                f.write(data)
            else:
                shutil.copyfileobj(data, f, STREAM_CHUNK_SIZE)
        os.replace(tmp_path, path)

    def download_stream(self, key):
        path = self._path(key)
        if not os.path.isfile(path):
            raise ObjectNotFound(f"Object {key} not found")

        def generate():
            with open(path, 'rb') as f:
                while True:
                    chunk = f.read(STREAM_CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk

        return generate()

    def exists(self, key):
        return os.path.isfile(self._path(key))

    def delete(self, key):
        path = self._path(key)
        if not os.path.isfile(path):
            raise ObjectNotFound(f"Object {key} not found")
        os.remove(path)


def create_storage(app_config):
    backend = app_config['STORAGE_BACKEND']
    if backend == 'local':
        return LocalObjectStorage(app_config['STORAGE_LOCAL_ROOT'],
                                  app_config.get('STORAGE_PUBLIC_URL') or '/storage')
    if backend == 'http':
        return HttpObjectStorage(
            app_config['STORAGE_API_URL'],
            app_config['STORAGE_ZONE'],
            app_config['STORAGE_API_KEY'],
            app_config['STORAGE_PUBLIC_URL'],
            timeout=app_config['STORAGE_TIMEOUT'],
        )
    raise ValueError(f"Unknown storage backend: {backend}")
