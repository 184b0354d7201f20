"""Configuration module for the back-office authorization bridge."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
