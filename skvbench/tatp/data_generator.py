from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from skvbench.utils.logger import get_logger

from .constants import (
    MAX_ACCESS_INFO_PER_SUBSCRIBER,
    MAX_CALL_FORWARDING_PER_FACILITY,
    MAX_SPECIAL_FACILITY_PER_SUBSCRIBER,
    MIN_ACCESS_INFO_PER_SUBSCRIBER,
    MIN_CALL_FORWARDING_PER_FACILITY,
    MIN_SPECIAL_FACILITY_PER_SUBSCRIBER,
    START_TIME_SLOTS,
)
from .random_utils import RandomContext
from .schema import AccessInfo, CallForwarding, SpecialFacility, Subscriber


class EntityKind(Enum):
    SUBSCRIBER = "subscriber"
    ACCESS_INFO = "access_info"
    SPECIAL_FACILITY = "special_facility"
    CALL_FORWARDING = "call_forwarding"


@dataclass(frozen=True)
class GeneratedRow:
    """one fully formed record waiting to be written by the loader."""

    kind: EntityKind
    record: Union[Subscriber, AccessInfo, SpecialFacility, CallForwarding]


def estimate_row_count(num_subscribers: int) -> int:
    """expected number of rows generated for ``num_subscribers`` subscribers."""
    access_infos = (MIN_ACCESS_INFO_PER_SUBSCRIBER + MAX_ACCESS_INFO_PER_SUBSCRIBER) / 2
    facilities = (MIN_SPECIAL_FACILITY_PER_SUBSCRIBER + MAX_SPECIAL_FACILITY_PER_SUBSCRIBER) / 2
    forwardings = (MIN_CALL_FORWARDING_PER_FACILITY + MAX_CALL_FORWARDING_PER_FACILITY) / 2
    per_subscriber = 1 + access_infos + facilities + facilities * forwardings
    return int(num_subscribers * per_subscriber)


class TATPDataGenerator:
    def __init__(self) -> None:
        self.logger = get_logger("TATPDataGenerator")

    def generate_subscriber_data(self, id_start: int, id_end: int) -> list[GeneratedRow]:
        """
        generates the subscribers in ``[id_start, id_end)`` together with their access
        infos, special facilities and call forwardings.

        rows come out in generation order: each subscriber precedes its dependents and
        each special facility precedes its call forwardings. the random source is seeded
        with ``id_start`` so a partition always regenerates the same data.
        """
        self.logger.info(f"Generating Subscriber data st={id_start}, e={id_end}")
        random = RandomContext(id_start)
        data: list[GeneratedRow] = []

        for s_id in range(id_start, id_end):
            self.logger.debug(f"Generating subscriber={s_id}")
            data.append(GeneratedRow(EntityKind.SUBSCRIBER, Subscriber.generate(random, s_id)))

            ai_types = random.unique_random_ids(MIN_ACCESS_INFO_PER_SUBSCRIBER, MAX_ACCESS_INFO_PER_SUBSCRIBER)
            for ai_type in ai_types:
                self.logger.debug(f"Generating Access Info {ai_type} for subscriber={s_id}")
                data.append(GeneratedRow(EntityKind.ACCESS_INFO, AccessInfo.generate(random, s_id, ai_type)))

            sf_types = random.unique_random_ids(
                MIN_SPECIAL_FACILITY_PER_SUBSCRIBER,
                MAX_SPECIAL_FACILITY_PER_SUBSCRIBER,
            )
            for sf_type in sf_types:
                self.logger.debug(f"Generating Special Facility {sf_type} for subscriber={s_id}")
                data.append(
                    GeneratedRow(EntityKind.SPECIAL_FACILITY, SpecialFacility.generate(random, s_id, sf_type))
                )

                slots = random.unique_random_ids(
                    MIN_CALL_FORWARDING_PER_FACILITY,
                    MAX_CALL_FORWARDING_PER_FACILITY,
                    domain=len(START_TIME_SLOTS),
                )
                for slot in slots:
                    start_time = START_TIME_SLOTS[slot - 1]
                    self.logger.debug(f"Generating Call Forwarding {start_time} for Special Facility={sf_type}")
                    data.append(
                        GeneratedRow(
                            EntityKind.CALL_FORWARDING,
                            CallForwarding.generate(random, s_id, sf_type, start_time),
                        )
                    )

        return data
