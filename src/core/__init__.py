"""Core domain package for chatrules.

Core contains activity matching, rule composition, dispatch, and prompt
logic without any Telegram or storage-specific code, keeping the business
logic portable.
"""
