"""
Process-wide diagnostic output channels

Two loggers are used for chatty test output: the "debug" channel for
fixture and lifecycle tracing, and the "print" channel for anything a test
wants to dump (documents, records). Each can be switched off for the whole
process, which the harness does before every test.
"""
import logging

DEBUG_CHANNEL = "mongo_cdc_harness.debug"
PRINT_CHANNEL = "mongo_cdc_harness.print"

_debug_logger = logging.getLogger(DEBUG_CHANNEL)
_print_logger = logging.getLogger(PRINT_CHANNEL)


def enable_debug():
    _debug_logger.disabled = False


def disable_debug():
    _debug_logger.disabled = True


def debug_enabled() -> bool:
    return not _debug_logger.disabled


def enable_print():
    _print_logger.disabled = False


def disable_print():
    _print_logger.disabled = True


def print_enabled() -> bool:
    return not _print_logger.disabled


def debug(message: str, *args):
    """Write to the debug channel"""
    _debug_logger.debug(message, *args)


def echo(message: str, *args):
    """Write to the print channel"""
    _print_logger.info(message, *args)
