"""Configuration helpers for django-tripops.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    TRIPOPS_RISK_BLOCK_THRESHOLD = 65
    TRIPOPS_CERTIFICATION_PROVIDER = 'crew.providers.LicenseRegistryProvider'
"""

from functools import lru_cache
from importlib import import_module

from django.conf import settings

from .exceptions import ProviderLoadError


DEFAULTS = {
    "RISK_BLOCK_THRESHOLD": 70,
    "UPSTREAM_TIMEOUT": 5.0,
    "UNMASKED_PASSENGER_MIN_LEVEL": 40,
    "END_CONFIRMATION_MAX_AGE": 600,
    "CERTIFICATION_PROVIDER": "django_tripops.providers.CrewCertificationProvider",
    "APPROVAL_PROVIDER": "django_tripops.providers.TripApprovalProvider",
    "HANDOVER_PROVIDER": "django_tripops.providers.HandoverRecordProvider",
    "WEATHER_PROVIDER": "django_tripops.providers.OpenMeteoWeatherProvider",
}


def get_setting(name: str, default=None):
    """Get a setting with TRIPOPS_ prefix, falling back to DEFAULTS."""
    if default is None:
        default = DEFAULTS.get(name)
    return getattr(settings, f"TRIPOPS_{name}", default)


def get_risk_block_threshold() -> int:
    return int(get_setting("RISK_BLOCK_THRESHOLD"))


def get_upstream_timeout() -> float:
    return float(get_setting("UPSTREAM_TIMEOUT"))


@lru_cache(maxsize=32)
def load_provider(dotted_path: str, base_class_path: str):
    """
    Import and instantiate a provider from dotted path.

    Raises ProviderLoadError for bad imports or classes that do not
    subclass the expected provider base.
    """
    base_module_path, base_name = base_class_path.rsplit(".", 1)
    base_class = getattr(import_module(base_module_path), base_name)

    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
    except ValueError:
        raise ProviderLoadError(dotted_path, "Invalid dotted path format")

    try:
        module = import_module(module_path)
    except ImportError as e:
        raise ProviderLoadError(dotted_path, f"Cannot import module: {e}")

    try:
        provider_class = getattr(module, class_name)
    except AttributeError:
        raise ProviderLoadError(dotted_path, f"Class '{class_name}' not found in module")

    if not isinstance(provider_class, type) or not issubclass(provider_class, base_class):
        raise ProviderLoadError(
            dotted_path,
            f"'{class_name}' must be a subclass of {base_name}"
        )

    return provider_class(timeout=get_upstream_timeout())


def get_certification_provider():
    return load_provider(
        get_setting("CERTIFICATION_PROVIDER"),
        "django_tripops.providers.BaseCertificationProvider",
    )


def get_approval_provider():
    return load_provider(
        get_setting("APPROVAL_PROVIDER"),
        "django_tripops.providers.BaseApprovalProvider",
    )


def get_handover_provider():
    return load_provider(
        get_setting("HANDOVER_PROVIDER"),
        "django_tripops.providers.BaseHandoverProvider",
    )


def get_weather_provider():
    return load_provider(
        get_setting("WEATHER_PROVIDER"),
        "django_tripops.providers.BaseWeatherProvider",
    )


def clear_provider_cache():
    """Clear the provider loading cache. Useful for testing."""
    load_provider.cache_clear()
