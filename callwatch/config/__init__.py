"""
Configuration module for callwatch.

Provides constants, logging setup and environment-based configuration.

### Usage Examples:

```python
from callwatch.config import load_env_file, get_config
load_env_file()
config = get_config()
print(f"Event socket: {config.esl.host}:{config.esl.port}")

from callwatch.config.logging_config import configure_logging
logger = configure_logging()
logger.info("Application started")
```
"""

from .env_loader import (
    get_environment_info,
    load_application_config,
    load_env_file,
)
from .models import (
    ApplicationConfig,
    Environment,
    ESLConfig,
    LoggingConfig,
    LogLevel,
)
from .settings import (
    get_config,
    reload_config,
    set_config,
)

__all__ = [
    "ApplicationConfig",
    "Environment",
    "ESLConfig",
    "LoggingConfig",
    "LogLevel",
    "get_config",
    "get_environment_info",
    "load_application_config",
    "load_env_file",
    "reload_config",
    "set_config",
]
