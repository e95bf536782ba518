import logging
from typing import Dict, Optional

import httpx

from atelier.config import settings

logger = logging.getLogger(__name__)


class OCRClient:
    """
    Client for the external invoice extraction function.

    POST {"imageUrl": ...} with the caller's bearer token; the function answers
    with best-effort fields::

        {invoiceNumber?, invoiceDate? (DD/MM/YYYY), totalValue?, phoneNumber?,
         contactName?, items?: [{description, value}]}

    Extraction is best effort: any failure yields an empty dict, never an
    exception.
    """

    def __init__(
        self,
        function_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.function_url = function_url if function_url is not None else settings.ocr_function_url
        self.timeout = timeout if timeout is not None else settings.ocr_timeout_seconds
        self.transport = transport

        if not self.function_url:
            logger.warning("OCR_FUNCTION_URL not set. Uploaded invoices will be saved with default values.")

    async def extract(self, image_url: str, access_token: str) -> Dict:
        if not self.function_url:
            return {}

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.function_url, json={"imageUrl": image_url}, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"OCR request failed for {image_url}: {e.__class__.__name__}: {str(e)}")
            return {}

        if not response.is_success:
            logger.warning(f"OCR function returned {response.status_code} for {image_url}")
            return {}

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"OCR function returned a non-JSON body for {image_url}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"OCR function returned {type(data).__name__} instead of an object for {image_url}")
            return {}

        logger.info(f"OCR extraction completed. invoice_number: {data.get('invoiceNumber')}, items: {len(data.get('items') or [])}")
        return data


ocr_client = OCRClient()


def get_ocr_client() -> OCRClient:
    return ocr_client
