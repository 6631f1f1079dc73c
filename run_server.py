#!/usr/bin/env python3
"""
Lint Reviewer Server

Runs the webhook receiver with settings from the environment or a YAML file.
"""

import sys

from lint_reviewer.config import AppConfig, ConfigManager
from lint_reviewer.api import ReviewBot
from lint_reviewer.server import create_app


def main() -> None:
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    config = AppConfig.from_yaml(config_path) if config_path else AppConfig.from_env()
    config = ConfigManager(config).config

    app = create_app(ReviewBot(config))

    print("🚀 Starting Lint Reviewer Server...")
    print(f"📍 Server will be available at: http://{config.server.host}:{config.server.port}")
    print("📋 API Documentation:")
    print("   - Health Check: GET /api/v1/health")
    print("   - GitHub Webhook: POST /api/v1/webhooks/github")

    app.run(
        host=config.server.host,
        port=config.server.port,
        debug=config.debug
    )


if __name__ == '__main__':
    main()
