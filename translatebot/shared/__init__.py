"""Shared building blocks: cache, rate limiter, text helpers, models, repositories."""
