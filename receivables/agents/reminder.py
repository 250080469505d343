"""
Payment Reminder Agent

Drafts the payment reminder sent to a party over chat.

CRITICAL BOUNDARIES:
- The model only POLISHES a message whose content is already fixed:
  party name, total and every bill line are computed here and passed in.
- It CANNOT add, drop or change figures. A reply that does not keep the
  fixed opening line is discarded.
- Any failure (no API key, network, bad reply) falls back to the
  deterministic rendering of the same template.

The LLM is a TYPESETTER, not an ACCOUNTANT.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, ValidationError

from receivables.config import GeminiSettings, get_settings
from receivables.ledger.prefixes import PrefixTable, company_for
from receivables.models.ledger import Party
from receivables.queries.stats import format_inr


logger = structlog.get_logger(__name__)

REMINDER_TITLE = "Payment Reminder - "
_CODE_FENCE_START = re.compile(r"^```[a-zA-Z]*\n")
_CODE_FENCE_END = re.compile(r"\n```$")


def format_inr_plain(amount: float) -> str:
    """Whole rupees with Indian grouping: 150000.6 -> "1,50,001"."""
    rounded = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return format_inr(float(rounded))


def build_bill_lines(party: Party, table: PrefixTable) -> list[str]:
    """One "Bill <Company> <BillNo> (<Date>): ₹<Amt>[ (B)]" line per outstanding bill."""
    lines = []
    for bill in party.bills:
        if bill.bill_amt <= 0:
            continue
        suffix = " (B)" if bill.is_adjusted else ""
        company = company_for(bill.bill_no, table)
        lines.append(
            f"Bill {company} {bill.bill_no} ({bill.bill_date}): ₹{format_inr_plain(bill.bill_amt)}{suffix}"
        )
    return lines


def render_reminder(party: Party, table: PrefixTable, signature: str) -> str:
    """The reminder text, built without any model."""
    total = format_inr_plain(abs(party.raw_balance))
    bill_lines = "\n".join(build_bill_lines(party, table))
    return (
        f"{REMINDER_TITLE}{party.party_name}\n"
        "\n"
        f"This is a reminder regarding your outstanding balance of ₹{total}.\n"
        "\n"
        "Pending Bill Details:\n"
        "\n"
        f"{bill_lines}\n"
        "\n"
        "We request you to kindly process the payment at your earliest convenience. "
        "If the payment has already been initiated, please share the transaction "
        "details for our records.\n"
        "\n"
        f"{signature}"
    )


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```") and text.endswith("```"):
        text = _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", text))
    return text.strip()


class Reminder(BaseModel):
    party_name: str
    text: str
    used_model: bool = False


class ReminderAgent:
    """
    Generates payment reminders, with Gemini when it is configured.

    RESPONSIBILITIES:
    - Build the bill list and total from the reconciled party
    - Ask the model for the final wording of the fixed template

    BOUNDARIES:
    - NEVER sends anything; the user copies the text
    - NEVER trusts a reply that drops the template's opening line
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[object] = None,
    ):
        self._settings = settings
        self._model = model
        if self._settings is None:
            try:
                self._settings = get_settings().gemini
            except ValidationError:
                logger.info("gemini_not_configured")
        if self._model is None and self._settings is not None:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def signature(self) -> str:
        if self._settings is not None:
            return self._settings.business_signature
        return GeminiSettings.model_fields["business_signature"].default

    @property
    def is_available(self) -> bool:
        return self._model is not None

    def _build_prompt(self, party: Party, table: PrefixTable) -> str:
        total = format_inr_plain(abs(party.raw_balance))
        bill_lines = "\n".join(build_bill_lines(party, table))
        return f"""Generate a payment reminder message for the following party.
FOLLOW THE EXACT STRUCTURE BELOW. DO NOT add conversational filler before or after the message.

Party Name: {party.party_name}
Total Outstanding: ₹{total}

Bill Details:
{bill_lines}

STRICT FORMAT TO FOLLOW (Include exactly as shown):
{REMINDER_TITLE}[FULL_PARTY_NAME]

This is a reminder regarding your outstanding balance of ₹{total}.

Pending Bill Details:

[BILL_LIST_HERE]

We request you to kindly process the payment at your earliest convenience. If the payment has already been initiated, please share the transaction details for our records.

{self.signature}

Instructions:
1. Use the EXACT FULL Party Name provided above: "{party.party_name}". Do not shorten it.
2. For [BILL_LIST_HERE], use the exact bill lines provided above.
3. If a bill line ends with "(B)", keep it.
4. Single empty lines between sections exactly as shown.
5. Start with "{REMINDER_TITLE}" and end with "{self.signature}"."""

    async def generate(self, party: Party, table: PrefixTable) -> Reminder:
        """
        Reminder for one party.

        Returns the model's wording when it keeps the template, the
        deterministic rendering otherwise.
        """
        fallback = Reminder(
            party_name=party.party_name,
            text=render_reminder(party, table, self.signature),
        )
        if self._model is None:
            return fallback

        try:
            response = await self._model.generate_content_async(self._build_prompt(party, table))
            text = strip_code_fences(response.text or "")
        except Exception as e:
            logger.warning("reminder_model_failed", party_name=party.party_name, error=str(e))
            return fallback

        if not text.startswith(f"{REMINDER_TITLE}{party.party_name}"):
            logger.warning("reminder_model_off_template", party_name=party.party_name)
            return fallback

        return Reminder(party_name=party.party_name, text=text, used_model=True)