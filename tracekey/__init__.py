"""tracekey - Cloudflare colo 变化监控"""

__version__ = "1.0.0"
