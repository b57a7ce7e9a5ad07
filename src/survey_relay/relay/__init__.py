"""
Conversational relay layer.

This package contains:
- anthropic_client: thin HTTP client for the Messages API
- tools: the `query_survey_data` tool declaration and its execution
- orchestrator: one round of tool use between the model and the query engine
"""
