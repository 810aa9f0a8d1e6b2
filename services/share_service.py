import secrets
import string
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from loguru import logger

from models.dataset_models import Dataset
from models.share_models import ShareLink, ShareResponse
from services.errors import ShareLinkNotFoundError

_ALPHABET = string.ascii_letters + string.digits


class ShareLinkStore:
    """
    In-memory share links for datasets. One store is created at startup and
    kept on the application state; links do not survive a restart.
    """

    def __init__(self, base_url: str, id_length: int = 8):
        self.base_url = base_url.rstrip("/")
        self.id_length = id_length
        self._links: Dict[str, ShareLink] = {}
        self._owners: Dict[str, str] = {}

    def _new_id(self) -> str:
        while True:
            url_id = "".join(secrets.choice(_ALPHABET) for _ in range(self.id_length))
            if url_id not in self._links:
                return url_id

    def create(self, dataset: Dataset, owner_id: str) -> ShareLink:
        url_id = self._new_id()
        link = ShareLink(
            id=url_id,
            dataset_id=dataset.id,
            url=f"{self.base_url}/dataset/{url_id}",
            name=dataset.name,
            created_at=datetime.now(timezone.utc),
        )
        self._links[url_id] = link
        self._owners[url_id] = owner_id
        logger.info("Created share link '{}' for dataset '{}'", url_id, dataset.id)
        return link

    def share(self, dataset: Dataset, owner_id: str) -> Tuple[ShareLink, ShareResponse]:
        link = self.create(dataset, owner_id)
        text = (
            f"Check out this dataset: {dataset.name} "
            f"({dataset.row_count} rows, {len(dataset.columns)} columns)"
        )
        return link, ShareResponse(url=link.url, share_text=text)

    def resolve(self, url_id: str) -> ShareLink:
        """Look up a link and count the access."""
        link = self._links.get(url_id)
        if link is None:
            raise ShareLinkNotFoundError(url_id)
        link = link.model_copy(update={"access_count": link.access_count + 1})
        self._links[url_id] = link
        return link

    def owner_of(self, url_id: str) -> str:
        if url_id not in self._owners:
            raise ShareLinkNotFoundError(url_id)
        return self._owners[url_id]

    def for_dataset(self, dataset_id: str) -> List[ShareLink]:
        return [link for link in self._links.values() if link.dataset_id == dataset_id]

    def delete(self, url_id: str) -> None:
        if self._links.pop(url_id, None) is None:
            raise ShareLinkNotFoundError(url_id)
        self._owners.pop(url_id, None)

    def delete_for_dataset(self, dataset_id: str) -> int:
        doomed = [link.id for link in self.for_dataset(dataset_id)]
        for url_id in doomed:
            del self._links[url_id]
            self._owners.pop(url_id, None)
        return len(doomed)

    def clear(self) -> None:
        self._links.clear()
        self._owners.clear()
