"""
Progress Bar Utilities

tqdm progress bar over the bytes of a disk image, drawn on stderr so stdout
stays free for the gzip command stream.
"""

import sys

from tqdm import tqdm


class ProgressTracker:
    """
    Byte-offset progress bar with a running fragment count.

    When ``verbose`` is False nothing is drawn and write() falls back to a
    plain stderr line.
    """

    def __init__(self, total_size: int, verbose: bool = True):
        self.total_size = total_size
        self.position = 0
        self.fragments = 0
        self.pbar = None
        if verbose:
            self.pbar = tqdm(
                total=total_size,
                desc='Carving',
                unit='B',
                unit_scale=True,
                unit_divisor=1024,
                file=sys.stderr,
                dynamic_ncols=True,
            )

    def update(self, position: int, fragments: int = None):
        """
        Move the bar to an absolute byte offset.

        Args:
            position: Offset the scan has reached
            fragments: Fragments written so far, shown as a postfix
        """
        self.position = position
        if fragments is not None:
            self.fragments = fragments
        if self.pbar is None:
            return
        self.pbar.update(position - self.pbar.n)
        self.pbar.set_postfix(fragments=self.fragments, refresh=False)

    def write(self, message: str):
        """Print a line without breaking the progress bar."""
        if self.pbar is None:
            print(message, file=sys.stderr)
        else:
            tqdm.write(message, file=sys.stderr)

    def close(self):
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
