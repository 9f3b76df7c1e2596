"""
Device key material: the RSA key pair the simulated device signs with.

Key material is looked up through an ordered list of key sources. The first
source that yields a parseable public/private JWK pair wins; when every source
fails a KeyLoadError lists what was tried.
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from jose import jwk
from jose.constants import ALGORITHMS
from jose.exceptions import JWKError
from pydantic import BaseModel, ConfigDict, Field

from push_mfa_simulator.config import Settings
from push_mfa_simulator.exceptions import KeyLoadError, KeySourceError

logger = logging.getLogger(__name__)

# Members of an RSA JWK that may be published
PUBLIC_JWK_MEMBERS = ("kty", "n", "e", "kid", "alg", "use")

BUNDLED_KEY_PACKAGE = "push_mfa_simulator"
BUNDLED_KEY_RESOURCE = "resources/keys/rsa-jwk.json"


class KeyMaterial(BaseModel):
    """
    The device's signing identity. Immutable once loaded.
    """

    key_id: Optional[str] = None
    algorithm: str = ALGORITHMS.RS256
    public_jwk: Dict[str, Any]
    private_jwk: Dict[str, Any] = Field(..., repr=False, exclude=True)
    source: str = ""

    model_config = ConfigDict(frozen=True)


class KeySource:
    """A place key material can be read from."""

    description = "key source"

    def read(self) -> Dict[str, Any]:
        """
        Return the raw JWK document ({"public": ..., "private": ...}).

        Raises:
            KeySourceError: If the source is absent or unreadable.
        """
        raise NotImplementedError


class FileKeySource(KeySource):
    """JWK document on the filesystem, e.g. a mounted volume."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.description = f"file {self.path}"

    def read(self) -> Dict[str, Any]:
        if not self.path.is_file():
            raise KeySourceError(f"{self.path} does not exist")
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise KeySourceError(f"{self.path} is unreadable: {e}") from e


class PackageResourceKeySource(KeySource):
    """JWK document bundled with the package."""

    def __init__(
        self,
        package: str = BUNDLED_KEY_PACKAGE,
        resource: str = BUNDLED_KEY_RESOURCE,
    ):
        self.package = package
        self.resource = resource
        self.description = f"bundled resource {package}/{resource}"

    def read(self) -> Dict[str, Any]:
        try:
            text = resources.files(self.package).joinpath(self.resource).read_text(
                encoding="utf-8"
            )
            return json.loads(text)
        except (OSError, ValueError, ModuleNotFoundError) as e:
            raise KeySourceError(f"{self.description} is unreadable: {e}") from e


def parse_key_document(document: Any, source: str = "") -> KeyMaterial:
    """
    Parse a {"public": <jwk>, "private": <jwk>} document into KeyMaterial.

    Raises:
        KeySourceError: If either key is missing, malformed, or the two keys
            do not belong together.
    """
    if not isinstance(document, dict):
        raise KeySourceError("key document is not a JSON object")

    public_doc = document.get("public")
    private_doc = document.get("private")
    if not isinstance(public_doc, dict) or not isinstance(private_doc, dict):
        raise KeySourceError("key document needs 'public' and 'private' JWKs")
    if "d" not in private_doc:
        raise KeySourceError("'private' JWK has no private exponent")

    algorithm = private_doc.get("alg") or public_doc.get("alg") or ALGORITHMS.RS256
    try:
        jwk.construct(public_doc, algorithm)
        jwk.construct(private_doc, algorithm)
    except (JWKError, ValueError, TypeError, KeyError) as e:
        raise KeySourceError(f"JWK could not be parsed: {e}") from e

    if public_doc.get("n") != private_doc.get("n") or public_doc.get(
        "e"
    ) != private_doc.get("e"):
        raise KeySourceError("'public' and 'private' JWKs are not a pair")

    public_jwk = {k: public_doc[k] for k in PUBLIC_JWK_MEMBERS if k in public_doc}
    return KeyMaterial(
        key_id=public_doc.get("kid") or private_doc.get("kid"),
        algorithm=algorithm,
        public_jwk=public_jwk,
        private_jwk=dict(private_doc),
        source=source,
    )


class KeyMaterialStore:
    """
    Loads the device key pair once and hands out the same material afterwards.
    """

    def __init__(self, sources: Sequence[KeySource]):
        self.sources: List[KeySource] = list(sources)
        self._material: Optional[KeyMaterial] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyMaterialStore":
        sources: List[KeySource] = []
        if settings.jwk_path:
            sources.append(FileKeySource(settings.jwk_path))
        sources.append(PackageResourceKeySource())
        return cls(sources)

    def load(self) -> KeyMaterial:
        """
        Return the device key material, reading it on first use.

        Raises:
            KeyLoadError: If no source yields a usable key pair.
        """
        if self._material is not None:
            return self._material

        attempts: List[str] = []
        for source in self.sources:
            try:
                material = parse_key_document(source.read(), source.description)
            except KeySourceError as e:
                logger.warning(f"Key source skipped ({source.description}): {e}")
                attempts.append(f"{source.description}: {e}")
                continue

            logger.info(f"Device key material loaded from {source.description}")
            self._material = material
            return material

        raise KeyLoadError("No usable device key material", attempts)
