import random
import string
import time

def generate_id(prefix: str) -> str:
    """Readable unique id in format PREFIX-<epoch ms>-<5 chars>, e.g. COMP-1718000000000-X7K2P"""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"
