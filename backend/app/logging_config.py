"""Logging setup: custom TRACE level and per-library log levels."""

import logging

# Custom TRACE level
TRACE = 5
logging.TRACE = TRACE
logging.addLevelName(TRACE, "TRACE")


# Add trace method to standard Logger class for all instances
def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


logging.Logger.trace = trace_method


def configure_logging(log_level_str: str) -> None:
    """
    Configure the root logger once.

    VERBOSE keeps the root at DEBUG but opens up httpx/httpcore and connector
    traces; TRACE opens everything.
    """
    log_level_str = log_level_str.upper()
    if log_level_str == "TRACE":
        log_level = TRACE
    elif log_level_str == "VERBOSE":
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, log_level_str, logging.INFO)

    root = logging.getLogger()
    if root.hasHandlers():
        return

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )

    if log_level_str == "VERBOSE":
        http_level = logging.DEBUG
        connectors_level = TRACE
        services_level = logging.DEBUG
        root.info("VERBOSE mode enabled: HTTP details and GitHub connector traces active for debugging.")
    elif log_level_str == "TRACE":
        http_level = TRACE
        connectors_level = TRACE
        services_level = TRACE
    else:
        http_level = logging.WARNING
        connectors_level = logging.DEBUG if log_level <= logging.DEBUG else log_level
        services_level = log_level

    root.setLevel(log_level)
    logging.getLogger("httpcore").setLevel(http_level)
    logging.getLogger("httpx").setLevel(http_level)
    logging.getLogger("apscheduler").setLevel(max(log_level, logging.INFO))
    logging.getLogger("app.connectors").setLevel(connectors_level)
    logging.getLogger("app.services").setLevel(services_level)

    if log_level_str == "TRACE":
        root.trace("Trace logging enabled at startup (verbose details).")
    else:
        root.debug("Debug logging enabled at startup.")
