"""
API middleware components.

Provides cross-cutting concerns for the API:
- Error handling
- CORS configuration
- Request/response logging
- Security response headers
"""

from .error_handler import (
    setup_exception_handlers,
    create_error_response,
    service_errors,
)

from .cors import (
    CORSConfig,
    get_cors_config,
    setup_cors,
)

from .logging import (
    LoggingConfig,
    StructuredLogFormatter,
    RequestLoggingMiddleware,
    setup_logging,
    get_request_id,
    redact_sensitive_data,
)

from .security_headers import (
    SecurityHeadersConfig,
    get_security_headers_config,
    setup_security_headers,
)


__all__ = [
    # Error handling
    "setup_exception_handlers",
    "create_error_response",
    "service_errors",
    # CORS
    "CORSConfig",
    "get_cors_config",
    "setup_cors",
    # Logging
    "LoggingConfig",
    "StructuredLogFormatter",
    "RequestLoggingMiddleware",
    "setup_logging",
    "get_request_id",
    "redact_sensitive_data",
    # Security headers
    "SecurityHeadersConfig",
    "get_security_headers_config",
    "setup_security_headers",
]
