"""
Sequential bulk ESI processing against the /api/esi/process-batch endpoint.

Batches are sent one at a time; each request waits for the previous
response, with a fixed pause in between. The first failing batch stops the
run. Batches already submitted are not rolled back.
"""

import logging
import time

import requests

from config import BATCH_SIZE, BATCH_DELAY_SECONDS

logger = logging.getLogger(__name__)

BATCH_ENDPOINT = "/api/esi/process-batch"


class BatchProcessingError(Exception):
    pass


def create_batches(items, batch_size):
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")
    return [items[i:i + batch_size] for i in range(0, len(items), batch_size)]


class BulkContributionProcessor:

    def __init__(self, base_url, token, batch_size=BATCH_SIZE, batch_delay=BATCH_DELAY_SECONDS,
                 session=None, timeout=30, sleep=time.sleep):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.session = session or requests.Session()
        self.timeout = timeout
        self._sleep = sleep

    def process_batch(self, batch):
        response = self.session.post(
            f"{self.base_url}{BATCH_ENDPOINT}",
            json={"employees": batch},
            headers={
                "Authorization": f"Bearer {self.token}",
                "X-Requested-With": "XMLHttpRequest",
            },
            timeout=self.timeout,
        )

        try:
            data = response.json()
        except ValueError:
            raise BatchProcessingError(f"Invalid response from server (HTTP {response.status_code})")

        if not isinstance(data, dict):
            raise BatchProcessingError(f"Invalid response from server (HTTP {response.status_code})")

        if not response.ok or not data.get("success"):
            raise BatchProcessingError(data.get("message") or "Batch processing failed")
        return data

    def process(self, employees, on_progress=None):
        """
        Submit all employees in fixed-size batches.

        Args:
            employees: list of {"emp_code", "gross_wage"} dicts
            on_progress: optional callback receiving a progress dict after
                each completed batch

        Returns:
            dict with success flag, processed_count, total_amount and the
            per-employee results gathered so far; on failure also the error
        """
        batches = create_batches(employees, self.batch_size)
        processed_count = 0
        total_amount = 0.0
        results = []

        for index, batch in enumerate(batches):
            if index > 0 and self.batch_delay:
                self._sleep(self.batch_delay)

            try:
                batch_result = self.process_batch(batch)
            except (requests.RequestException, BatchProcessingError) as e:
                logger.error(f"Batch {index + 1} of {len(batches)} failed: {e}")
                return {
                    "success": False,
                    "error": str(e),
                    "processed_count": processed_count,
                    "results": results,
                }

            processed_count += batch_result.get("processed", 0)
            total_amount = round(total_amount + batch_result.get("amount", 0), 2)
            results.extend(batch_result.get("details", []))

            if on_progress:
                on_progress({
                    "processed": processed_count,
                    "total": len(employees),
                    "percentage": (processed_count / len(employees)) * 100,
                    "current_batch": index + 1,
                    "total_batches": len(batches),
                    "total_amount": total_amount,
                })

        logger.info(f"Bulk ESI processing finished: {processed_count} employees, amount {total_amount}")
        return {
            "success": True,
            "processed_count": processed_count,
            "total_amount": total_amount,
            "results": results,
        }
