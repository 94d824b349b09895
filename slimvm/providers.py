"""Provider to format mapping.

The first format listed for a provider is its base format: the artifact tier
every build for that provider produces, whatever formats were requested.
"""

from __future__ import annotations

from types import MappingProxyType

from slimvm.types import OutputFormat, Provider

PROVIDER_FORMATS = MappingProxyType(
    {
        Provider.HYPERKIT: (OutputFormat.RAW,),
        Provider.KVM: (OutputFormat.RAW, OutputFormat.QCOW2),
        Provider.VIRTUALBOX: (OutputFormat.ISO,),
    }
)


def provider_formats(provider: str | Provider) -> tuple[OutputFormat, ...]:
    """Return the formats a provider can consume, base format first.

    Raises:
        UnsupportedProviderError: If the provider is unknown.
    """
    return PROVIDER_FORMATS[Provider.parse(provider)]


def base_format(provider: str | Provider) -> OutputFormat:
    """Return the base format of a provider."""
    return provider_formats(provider)[0]


__all__ = ["PROVIDER_FORMATS", "base_format", "provider_formats"]
