import logging

from database.document import BlobDocument
from utils import hearts as pool
from utils.constants import HEARTS_KEY, MAX_HEARTS
from utils.utils import parse_iso


class HeartPool(BlobDocument):
    """Hearts, stored apart from the flashcard document."""

    key = HEARTS_KEY

    def defaults(self):
        return pool.default_hearts()

    def decode(self, parsed):
        data = super().decode(parsed)
        data['hearts'] = max(0, min(MAX_HEARTS, int(data['hearts'])))
        parse_iso(data['last_lost_at'])
        return data

    @property
    def hearts(self):
        return pool.regenerate(self.document, self.clock())

    @property
    def is_premium(self):
        return self.document['is_premium']

    def time_until_next(self):
        return pool.time_until_next(self.document, self.clock())

    def lose_heart(self):
        """Spend one heart. Returns how many are left."""
        now = self.clock()
        if self.is_premium:
            return MAX_HEARTS
        self.document = pool.consume(pool.settle(self.document, now), now)
        self.save()
        logging.info(f"Heart lost, {self.document['hearts']} left")
        return self.document['hearts']

    def refill(self):
        self.document = {**self.document, 'hearts': MAX_HEARTS, 'last_lost_at': None}
        self.save()

    def set_premium(self, is_premium):
        self.document = {**self.document, 'is_premium': is_premium}
        if is_premium:
            self.document['hearts'] = MAX_HEARTS
            self.document['last_lost_at'] = None
        self.save()
