#!/usr/bin/env python3

import json
import sys
from datetime import datetime


def make_c2b_payload(kind: str, amount: str, bill_ref: str) -> dict:
    """Build a Daraja-shaped C2B callback body for manual testing."""
    payload = {
        "TransactionType": "Pay Bill",
        "TransID": "RKTQDM7W6S",
        "TransTime": datetime.now().strftime("%Y%m%d%H%M%S"),
        "TransAmount": amount,
        "BusinessShortCode": "600638",
        "BillRefNumber": bill_ref,
        "InvoiceNumber": "",
        "ThirdPartyTransID": "",
        "MSISDN": "2547 ***** 126",
        "FirstName": "John",
    }
    if kind == "confirmation":
        payload.update(
            {"OrgAccountBalance": "49197.00", "MiddleName": "", "LastName": "Doe"}
        )
    return payload


if __name__ == "__main__":
    if len(sys.argv) != 4 or sys.argv[1] not in ("validation", "confirmation"):
        print("Usage: make_c2b_payload.py <validation|confirmation> <amount> <bill_ref>")
        sys.exit(1)

    print(json.dumps(make_c2b_payload(sys.argv[1], sys.argv[2], sys.argv[3]), indent=2))
