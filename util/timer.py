import time
import logging

log = logging.getLogger(__name__)

class Timer:

    def __init__(self, string="", level=logging.INFO) -> None:
        self.level = level
        self.elapsed = None
        self.tic(string=string)

    def tic(self, string=""):
        self.string = string
        self.start = time.perf_counter()

    def toc(self):
        self.elapsed = time.perf_counter() - self.start
        log.log(self.level, f"{self.string} in {self.elapsed:.3f}s")
        return self.elapsed

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *exc_info):
        self.toc()
        return False
