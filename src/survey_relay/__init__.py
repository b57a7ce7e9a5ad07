"""
Survey chat relay.

Two serverless functions:
- handlers.chat_proxy: relays a conversation to the Anthropic Messages API,
  answering one round of `query_survey_data` tool calls
- handlers.survey_query: structured queries over the bundled survey responses
"""

from survey_relay.config import APP_VERSION as __version__

__all__ = ["__version__"]
