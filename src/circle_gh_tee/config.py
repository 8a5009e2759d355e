import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import yaml

from .errors import ConfigurationError
from .renderer import (
    DEFAULT_EXIT_NON_ZERO_TEMPLATE,
    DEFAULT_EXIT_ZERO_TEMPLATE,
    CommentTemplates,
    validate_template,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".circle-gh-tee.yaml"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_PUBLISH_RETRIES = 2

# Environment variables are listed in priority order. CircleCI exports the
# CIRCLE_PR_* names instead of CIRCLE_PROJECT_* for pull requests from forks.
PULL_REQUEST_URL_ENV = ("CIRCLE_PULL_REQUEST", "CI_PULL_REQUEST")
REPOSITORY_OWNER_ENV = ("CIRCLE_PROJECT_USERNAME", "CIRCLE_PR_USERNAME")
REPOSITORY_NAME_ENV = ("CIRCLE_PROJECT_REPONAME", "CIRCLE_PR_REPONAME")
GITHUB_TOKEN_ENV = ("GITHUB_API_TOKEN", "GITHUB_ACCESS_TOKEN")
GITHUB_API_URL_ENV = ("CIRCLE_GH_TEE_GITHUB_API_URL",)
PUBLISH_RETRIES_ENV = ("CIRCLE_GH_TEE_PUBLISH_RETRIES",)
CONFIG_PATH_ENV = "CIRCLE_GH_TEE_CONFIG_PATH"


@dataclass(frozen=True)
class Configuration:
    """
    Everything a run needs, resolved once at startup.

    Values come from, in order of precedence: command-line flags, environment
    variables, the YAML config file, built-in defaults.
    """

    templates: CommentTemplates
    pull_request_url: Optional[str]
    repository_owner: Optional[str]
    repository_name: Optional[str]
    github_token: Optional[str]
    github_api_url: str = DEFAULT_GITHUB_API_URL
    publish_retries: int = DEFAULT_PUBLISH_RETRIES

    @classmethod
    def load(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        config_path: Optional[str] = None,
        exit_zero_template: Optional[str] = None,
        exit_non_zero_template: Optional[str] = None,
    ) -> "Configuration":
        """
        Builds the configuration from the environment and an optional config file.

        Raises:
            TemplateSyntaxError: If either template cannot be rendered.
            ConfigurationError: If a template or the API URL is not a string,
                or the publish retry count is not a non-negative integer.
        """
        env = os.environ if environ is None else environ
        path = config_path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
        file_config = _load_config_file(path)

        def get_env(keys: Sequence[str]) -> Optional[str]:
            for key in keys:
                value = env.get(key)
                if value:
                    return value
            return None

        def get_value(override, env_keys, yaml_key, default, caster=None):
            if override:
                val = override
            else:
                val = get_env(env_keys)
                if val is None:
                    val = file_config.get(yaml_key)
                if val is None:
                    val = default
            if caster:
                return caster(val)
            return val

        templates = CommentTemplates(
            exit_zero=get_value(
                exit_zero_template,
                (),
                "exitZeroTemplate",
                DEFAULT_EXIT_ZERO_TEMPLATE,
                caster=_string("exitZeroTemplate"),
            ),
            exit_non_zero=get_value(
                exit_non_zero_template,
                (),
                "exitNonZeroTemplate",
                DEFAULT_EXIT_NON_ZERO_TEMPLATE,
                caster=_string("exitNonZeroTemplate"),
            ),
        )
        validate_template(templates.exit_zero, "exit-zero template")
        validate_template(templates.exit_non_zero, "exit-non-zero template")

        return cls(
            templates=templates,
            pull_request_url=get_env(PULL_REQUEST_URL_ENV),
            repository_owner=get_env(REPOSITORY_OWNER_ENV),
            repository_name=get_env(REPOSITORY_NAME_ENV),
            github_token=get_env(GITHUB_TOKEN_ENV),
            github_api_url=get_value(
                None,
                GITHUB_API_URL_ENV,
                "githubApiUrl",
                DEFAULT_GITHUB_API_URL,
                caster=_string("githubApiUrl"),
            ),
            publish_retries=get_value(
                None,
                PUBLISH_RETRIES_ENV,
                "publishRetries",
                DEFAULT_PUBLISH_RETRIES,
                caster=_non_negative_int,
            ),
        )


def _string(name: str):
    def cast(value: Any) -> str:
        if not isinstance(value, str):
            raise ConfigurationError(f"Expected a string for {name}, got {value!r}")
        return value

    return cast


def _non_negative_int(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Expected a non-negative integer, got {value!r}") from e
    if number < 0:
        raise ConfigurationError(f"Expected a non-negative integer, got {value!r}")
    return number


def _load_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            config_data = yaml.safe_load(f)
            logger.info(f"Loaded configuration from {path}")
    except FileNotFoundError:
        logger.info(f"Config file not found at {path}, using default values.")
        return {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading configuration from {path}: {e}")
        return {}

    if not config_data:
        return {}
    if not isinstance(config_data, dict):
        logger.error(f"Ignoring configuration in {path}: expected a mapping")
        return {}
    return config_data
