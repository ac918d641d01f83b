import contextlib
import logging
import os
import time


@contextlib.contextmanager
def timed_context(_l: logging.Logger, msg: str):
    """
    Context manager to time a block of code.
    """
    start_time = time.time()
    yield
    end_time = time.time()
    _l.info(f"{msg} took {end_time - start_time:.2f} seconds")

def is_true_value(value):
    if value is None:
        return False

    elif value.lower() in ["true", "1", "yes", 'y']:
        return True

    elif value.lower() in ["false", "0", "no", 'n']:
        return False

    else:
        raise ValueError(f"Invalid value for boolean conversion: {value}")

def triageguy_should_fail_on_error():
    return is_true_value(os.environ.get("TRIAGEGUY_FAIL_EARLY", None))

def safe_decode_string(bs: bytes):
    assert type(bs) == bytes
    try:
        return bs.decode('utf-8')
    except UnicodeDecodeError:
        return bs.decode('utf-8', errors='replace')
