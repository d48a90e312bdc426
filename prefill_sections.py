# prefill_sections.py
import copy
from typing import Any, Dict

# BRD sections the prefill pass works on, in form order
PREFILL_SECTIONS = (
    "clientInformation",
    "aciInformation",
    "paymentChannels",
    "fundingMethods",
    "achPaymentProcessing",
    "miniAccountMaster",
    "accountIdentifierInformation",
    "paymentRules",
    "notifications",
    "remittance",
    "agentPortal",
    "recurringPayments",
    "ivr",
    "generalImplementations",
    "approvals",
)


def map_response_to_prefill_sections(brd: Any) -> Dict[str, Any]:
    """
    Project a BRD form (as returned by the BRD service) onto the prefill
    sections. Sections missing from the BRD come back as null.
    """
    if not isinstance(brd, dict):
        raise ValueError(f"Error mapping BRD response to prefill sections: expected an object, got {type(brd).__name__}")
    return {name: copy.deepcopy(brd.get(name)) for name in PREFILL_SECTIONS}
