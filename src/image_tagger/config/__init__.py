from image_tagger.config.config import ConfigManager, DEFAULT_CONFIG, get_root_config_path

__all__ = ["ConfigManager", "DEFAULT_CONFIG", "get_root_config_path"]
