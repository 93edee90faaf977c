"""
Configuration subsystem for Rankboard.

- **config.py**: Static configuration from environment variables (.env support)
- **manager.py**: Dot-notation lookups over YAML defaults in config/
- **errors.py**: Configuration exception hierarchy

Usage
-----
```python
from rankboard.core.config import Config, ConfigManager

url = Config.REDIS_URL
bound = ConfigManager.get_int("leaderboard.counter.circular_bound", 99_999)
```
"""

from rankboard.core.config.config import Config, Environment
from rankboard.core.config.errors import (
    ConfigError,
    ConfigInitializationError,
    ConfigValidationError,
)
from rankboard.core.config.manager import ConfigManager

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigError",
    "ConfigInitializationError",
    "ConfigValidationError",
]
