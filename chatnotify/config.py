from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_SLACK_CHANNEL = "#general"
DEFAULT_SLACK_USERNAME = "slackbot"
DEFAULT_TEAMS_CHANNEL = "default"
DEFAULT_TEAMS_WEBHOOK_NAME = "default"


class SlackSettings(BaseModel):
    # Webhook wins over the legacy token when both are set
    webhook: str = ""
    # Per-channel webhooks, e.g. {"#deploys": "https://hooks.slack.com/..."}
    webhooks: dict[str, str] = Field(default_factory=dict)
    token: str = ""
    channel: str = DEFAULT_SLACK_CHANNEL
    username: str = DEFAULT_SLACK_USERNAME


class TeamsSettings(BaseModel):
    channel: str = DEFAULT_TEAMS_CHANNEL
    # channel -> webhook name -> url
    webhooks: dict[str, dict[str, str]] = Field(default_factory=dict)


class Settings(BaseSettings):
    environment: str = "development"

    # "slack" or "teams"; empty = detect from configured webhooks
    provider: str = ""

    # Installed distribution to read name/version/bug tracker from
    package_name: str = ""

    http_timeout: float = 10.0

    slack: SlackSettings = Field(default_factory=SlackSettings)
    teams: TeamsSettings = Field(default_factory=TeamsSettings)

    model_config = {
        "env_file": ".env",
        "env_prefix": "NOTIFY_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    @property
    def is_test(self) -> bool:
        return self.environment.lower() == "test"
