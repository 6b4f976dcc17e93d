"""In-process fake Docker registry for pull tests."""

import hashlib
import json

from aiohttp import web
from aiohttp.test_utils import TestServer

TEST_TOKEN = "test-token"
SERVICE = "fake-registry"

DOCKER_CONFIG = "application/vnd.docker.container.image.v1+json"
DOCKER_LAYER = "application/vnd.docker.image.rootfs.diff.tar.gzip"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
OCI_INDEX = "application/vnd.oci.image.index.v1+json"


def sha256_digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def chain(parent: str, digest: str) -> str:
    """Reference chain ID computed independently of the package."""
    return hashlib.sha256(f"{parent}-{digest}".encode()).hexdigest()


def make_config(architecture: str = "amd64") -> dict:
    return {
        "architecture": architecture,
        "os": "linux",
        "created": "2024-05-01T12:00:00Z",
        "config": {"Cmd": ["nginx", "-g", "daemon off;"], "Env": ["PATH=/usr/bin"]},
        "history": [{"created_by": "ADD rootfs"}],
        "rootfs": {"type": "layers", "diff_ids": ["sha256:aa", "sha256:bb"]},
    }


class FakeRegistry:
    """Serves a bearer challenge, a token endpoint, one tag and its blobs.

    Every request path is recorded in ``requests`` so tests can assert which
    endpoints were hit.
    """

    def __init__(
        self,
        repository: str = "library/nginx",
        tag: str = "alpine",
        platforms: tuple = ("linux/amd64",),
        layer_count: int = 3,
        attestation: bool = True,
        send_challenge: bool = True,
    ) -> None:
        self.repository = repository
        self.tag = tag
        self.send_challenge = send_challenge
        self.base_url = ""
        self.requests: list[str] = []
        self.accepts: list[str] = []
        self.blobs: dict[str, bytes] = {}
        self.manifests: dict[str, bytes] = {}
        self.images: dict[str, dict] = {}

        entries = []
        for platform in platforms:
            os_name, architecture = platform.split("/")[:2]
            config_bytes = json.dumps(make_config(architecture)).encode()
            config_digest = self.add_blob(config_bytes)
            layers = [
                self.add_blob(f"{platform} layer {i} content".encode())
                for i in range(layer_count)
            ]
            manifest = {
                "schemaVersion": 2,
                "mediaType": DOCKER_MANIFEST,
                "config": {
                    "mediaType": DOCKER_CONFIG,
                    "size": len(config_bytes),
                    "digest": config_digest,
                },
                "layers": [
                    {"mediaType": DOCKER_LAYER, "size": len(self.blobs[d]), "digest": d}
                    for d in layers
                ],
            }
            manifest_digest = self.add_manifest(manifest)
            self.images[platform] = {
                "manifest_digest": manifest_digest,
                "config_digest": config_digest,
                "config": json.loads(config_bytes),
                "layers": layers,
            }
            entries.append(
                {
                    "mediaType": DOCKER_MANIFEST,
                    "digest": manifest_digest,
                    "size": len(self.manifests[manifest_digest]),
                    "platform": {"os": os_name, "architecture": architecture},
                }
            )

        if attestation:
            attestation_digest = self.add_manifest({"schemaVersion": 2, "layers": []})
            entries.append(
                {
                    "mediaType": "application/vnd.oci.image.manifest.v1+json",
                    "digest": attestation_digest,
                    "platform": {"os": "unknown", "architecture": "unknown"},
                }
            )

        self.index = {"schemaVersion": 2, "mediaType": OCI_INDEX, "manifests": entries}

        self.app = web.Application()
        self.app.router.add_get("/token", self.handle_token)
        self.app.router.add_get("/v2/{repo:.+}/manifests/{reference}", self.handle_manifest)
        self.app.router.add_get("/v2/{repo:.+}/blobs/{digest}", self.handle_blob)

    def add_blob(self, data: bytes) -> str:
        digest = sha256_digest(data)
        self.blobs[digest] = data
        return digest

    def add_manifest(self, manifest: dict) -> str:
        data = json.dumps(manifest).encode()
        digest = sha256_digest(data)
        self.manifests[digest] = data
        return digest

    @property
    def blob_requests(self) -> list[str]:
        return [path for path in self.requests if "/blobs/" in path]

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {TEST_TOKEN}"

    def _challenge(self, request: web.Request) -> web.Response:
        headers = {}
        if self.send_challenge:
            realm = f"{request.url.origin()}/token"
            headers["WWW-Authenticate"] = (
                f'Bearer realm="{realm}",service="{SERVICE}",'
                f'scope="repository:{self.repository}:pull"'
            )
        return web.json_response({"errors": [{"code": "UNAUTHORIZED"}]}, status=401, headers=headers)

    async def handle_token(self, request: web.Request) -> web.Response:
        self.requests.append(request.path_qs)
        if request.query.get("service") != SERVICE:
            return web.json_response({"details": "bad service"}, status=400)
        return web.json_response({"token": TEST_TOKEN, "expires_in": 300})

    async def handle_manifest(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        self.accepts.append(request.headers.get("Accept", ""))
        if request.match_info["repo"] != self.repository:
            return web.json_response({"errors": []}, status=404)
        if not self._authorized(request):
            return self._challenge(request)

        reference = request.match_info["reference"]
        if reference == self.tag:
            return web.Response(body=json.dumps(self.index).encode(), content_type="application/json")
        if reference in self.manifests:
            return web.Response(body=self.manifests[reference], content_type="application/json")
        return web.json_response({"errors": [{"code": "MANIFEST_UNKNOWN"}]}, status=404)

    async def handle_blob(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        if not self._authorized(request):
            return self._challenge(request)

        data = self.blobs.get(request.match_info["digest"])
        if data is None:
            return web.json_response({"errors": [{"code": "BLOB_UNKNOWN"}]}, status=404)
        return web.Response(body=data, content_type="application/octet-stream")


async def start_registry(registry: FakeRegistry) -> TestServer:
    """Serve ``registry`` on a local port and record its base URL."""
    server = TestServer(registry.app)
    await server.start_server()
    registry.base_url = str(server.make_url("/")).rstrip("/")
    return server
