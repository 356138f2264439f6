"""Mirror selection for the idGames archive."""

import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .exceptions import IdgConfigError

logger = logging.getLogger(__name__)

MASTER_MIRROR = "https://ftp.fu-berlin.de/pc/games/idgames"

IDGAMES_MIRRORS: tuple[str, ...] = (
    MASTER_MIRROR,
    "https://youfailit.net/pub/idgames",
    "https://www.gamers.org/pub/idgames",
    "http://ftpmirror1.infania.net/pub/idgames",
    "https://www.quaddicted.com/files/idgames",
)


def _normalize(url: str) -> str:
    return url.rstrip("/")


@dataclass(frozen=True)
class MirrorPool:
    """The set of mirrors a run may download from.

    Built once per run and passed to the transport; never mutated.
    """

    mirrors: tuple[str, ...]
    """Usable mirrors, i.e. the built-in list minus exclusions"""

    master: str = MASTER_MIRROR
    """Mirror used for fresh content and for retries"""

    base_url: Optional[str] = None
    """Explicit mirror URL overriding random selection"""

    @classmethod
    def build(
        cls,
        exclude_urls: Iterable[str] = (),
        base_url: Optional[str] = None,
        mirrors: Iterable[str] = IDGAMES_MIRRORS,
        master: str = MASTER_MIRROR,
    ) -> "MirrorPool":
        """Create a pool from the built-in mirror list.

        Args:
            exclude_urls: URL fragments; any mirror containing one is dropped
            base_url: Explicit mirror URL to use instead of a random mirror
            mirrors: Candidate mirrors
            master: Master mirror URL

        Returns:
            MirrorPool instance

        Raises:
            IdgConfigError: If every mirror is excluded and no explicit URL
                was given
        """
        excludes = [e for e in exclude_urls if e]
        usable: list[str] = []
        for mirror in mirrors:
            excluded = [e for e in excludes if e in mirror]
            if excluded:
                logger.debug(f"Excluding mirror {mirror} (matched {excluded[0]})")
                continue
            usable.append(mirror)

        if not usable and base_url is None:
            raise IdgConfigError(
                "All mirrors are excluded; remove an --exclude or pass --url"
            )

        for mirror in usable:
            logger.debug(f"Usable mirror: {mirror}")

        return cls(mirrors=tuple(usable), master=master, base_url=base_url)

    def random_mirror(self, rng: Optional[random.Random] = None) -> str:
        """Return a random usable mirror."""
        if not self.mirrors:
            return self.master
        chooser = rng or random
        return chooser.choice(self.mirrors)

    def select_base_url(self, rng: Optional[random.Random] = None) -> str:
        """Return the explicit mirror URL, or a random mirror if none is set."""
        if self.base_url is not None:
            return self.base_url
        return self.random_mirror(rng)

    def is_master(self, url: str) -> bool:
        """Check whether a URL points at the master mirror."""
        return _normalize(url) == _normalize(self.master)
