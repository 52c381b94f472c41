"""Slack front-end for the MOBI bridge.

WHY: Users hand books to the bridge by sharing them in Slack and get
the converted file back in the same channel.

HOW: The bot runs in Socket Mode via slack-bolt. Handlers submit
documents to the conversion pipeline; SlackGateway posts the replies.

RULES:
- Socket Mode requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN
- Required bot scopes: files:read, files:write, chat:write, commands
"""
