from .plugin import CAPABILITIES, PAGE_SIZE, PROVIDER_NAME, Config, Plugin


def register(registry) -> None:
    registry.register(
        PROVIDER_NAME,
        Plugin,
        capabilities=CAPABILITIES,
        config_cls=Config,
        page_size=PAGE_SIZE,
        debug=True,
    )


__all__ = ["CAPABILITIES", "PAGE_SIZE", "PROVIDER_NAME", "Config", "Plugin", "register"]
