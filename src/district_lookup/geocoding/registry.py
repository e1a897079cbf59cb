"""Provider registry for geocoding adapters."""

from district_lookup.config import Settings

from .base import GeocodeProvider


class GeocodeProviderRegistry:
    """Registry for discovering and instantiating geocoding providers."""

    _providers: dict[str, type[GeocodeProvider]] = {}

    @classmethod
    def register(
        cls, provider_class: type[GeocodeProvider]
    ) -> type[GeocodeProvider]:
        """Decorator to register a geocoding provider.

        Args:
            provider_class: GeocodeProvider subclass to register

        Returns:
            The same provider class (for use as decorator)

        Example:
            @GeocodeProviderRegistry.register
            class CensusGeocoder(GeocodeProvider):
                ...
        """
        # service_name is a constant property, so it can be read off the class
        provider_name = provider_class.service_name.fget(None)  # type: ignore
        cls._providers[provider_name] = provider_class
        return provider_class

    @classmethod
    def get_provider(cls, name: str, config: Settings) -> GeocodeProvider:
        """Instantiate a provider by name.

        Args:
            name: Provider identifier (e.g., 'census', 'usps')
            config: Settings object to pass to provider constructor

        Returns:
            Instantiated GeocodeProvider

        Raises:
            ValueError: If provider name is not registered
        """
        if name not in cls._providers:
            available = ", ".join(cls.list_providers())
            raise ValueError(
                f"Unknown geocoding provider: {name}. "
                f"Available providers: {available}"
            )
        return cls._providers[name](config)

    @classmethod
    def create_all(cls, config: Settings) -> dict[str, GeocodeProvider]:
        """Instantiate every registered provider, keyed by name."""
        return {name: cls.get_provider(name, config) for name in cls.list_providers()}

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider names.

        Returns:
            List of provider identifiers
        """
        return sorted(cls._providers.keys())
