"""
config 모듈 - 설정 관리
"""

from .system_config import SystemConfig, load_config, create_default_config

__all__ = ['SystemConfig', 'load_config', 'create_default_config']
