"""
External machine-translation providers.

TranslationProvider is the seam the engine depends on; tests substitute a
fake. TencentTranslationProvider calls the Tencent Cloud TMT
``TextTranslate`` action through the official SDK. The SDK client is
blocking, so each call runs in a worker thread.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from tencentcloud.common import credential
from tencentcloud.common.exception.tencent_cloud_sdk_exception import (
    TencentCloudSDKException,
)
from tencentcloud.common.profile.client_profile import ClientProfile
from tencentcloud.common.profile.http_profile import HttpProfile
from tencentcloud.tmt.v20180321 import models, tmt_client

from buzzing.config.settings import Settings
from buzzing.translation.config import TranslationConfig
from buzzing.translation.schemas import Locale

logger = logging.getLogger(__name__)


class TranslationProviderError(Exception):
    """The provider could not translate a text."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class TranslationProvider(ABC):
    """Translates one text between two supported locales."""

    name: str = "provider"

    @abstractmethod
    async def translate(self, text: str, source: Locale, target: Locale) -> str:
        """
        Translate ``text`` from ``source`` to ``target``.

        Raises:
            TranslationProviderError: On any provider-side failure.
        """
        ...


def build_tmt_client(
    secret_id: str,
    secret_key: str,
    region: str = "ap-guangzhou",
    endpoint: str = "tmt.tencentcloudapi.com",
    timeout: int = 30,
) -> tmt_client.TmtClient:
    """Create an SDK client; it is reused for every call of the process."""
    http_profile = HttpProfile(endpoint=endpoint, reqTimeout=timeout)
    return tmt_client.TmtClient(
        credential.Credential(secret_id, secret_key),
        region,
        ClientProfile(httpProfile=http_profile),
    )


class TencentTranslationProvider(TranslationProvider):
    """Tencent Cloud TMT ``TextTranslate``."""

    name = "tencent"

    def __init__(self, client: tmt_client.TmtClient, project_id: int = 0) -> None:
        """
        Args:
            client: Configured TMT SDK client
            project_id: Tencent Cloud project id sent with every request
        """
        self._client = client
        self._project_id = project_id

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        config: TranslationConfig | None = None,
    ) -> "TencentTranslationProvider":
        """Build the provider from credentials in settings."""
        config = config or TranslationConfig()

        if not settings.translation_configured:
            raise TranslationProviderError(
                "Tencent Cloud credentials not configured "
                "(TENCENT_SECRET_ID, TENCENT_SECRET_KEY)"
            )

        client = build_tmt_client(
            settings.tencent_secret_id,
            settings.tencent_secret_key,
            region=settings.tencent_region,
            endpoint=config.provider_endpoint,
            timeout=int(settings.http_timeout_seconds),
        )
        logger.info(f"Tencent TMT provider configured (region={settings.tencent_region})")
        return cls(client, project_id=config.project_id)

    async def translate(self, text: str, source: Locale, target: Locale) -> str:
        request = models.TextTranslateRequest()
        request.SourceText = text
        request.Source = source.value
        request.Target = target.value
        request.ProjectId = self._project_id

        try:
            response = await asyncio.to_thread(self._client.TextTranslate, request)
        except TencentCloudSDKException as e:
            raise TranslationProviderError(
                f"Tencent TMT {source.value}->{target.value} failed: {e.message}",
                code=e.code,
            ) from e

        translated = getattr(response, "TargetText", None)
        if not translated:
            raise TranslationProviderError("Tencent TMT returned no translation")
        return translated
