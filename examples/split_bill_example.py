"""Example usage of the allocation engine and share codes.

This example walks a dinner receipt from parser output to what each person
owes, and issues the share code guests would use to join.
"""

from billsplit.allocation import summarize_receipt
from billsplit.claims import assign_item, claim_item
from billsplit.ingestion import (
    ParsedReceipt,
    add_participant,
    apply_parsed_receipt,
    confirm_tip,
    new_receipt,
    start_parsing,
)
from billsplit.models import Participant
from billsplit.share_codes import InMemoryShareCodeStore, ShareCodeGenerator


def main():
    """Example of splitting a parsed receipt between three people."""
    # Output of the receipt parser, already in integer cents
    parsed = ParsedReceipt.model_validate(
        {
            "merchant_name": "Trattoria Uno",
            "merchant_type": "restaurant",
            "total_cents": 8856,
            "tax_cents": 656,
            "tip_cents": 1200,
            "items": [
                {"name": "Margherita", "quantity": 1, "price_cents": 1800},
                {"name": "Carbonara", "quantity": 1, "price_cents": 2200},
                {"name": "House wine", "quantity": 1, "price_cents": 3000},
            ],
        }
    )

    host = Participant(id="ana", display_name="Ana")
    receipt = start_parsing(new_receipt("dinner-1", host), "ana")
    receipt, items = apply_parsed_receipt(receipt, parsed)

    # Guests join with the share code
    generator = ShareCodeGenerator(InMemoryShareCodeStore())
    code = generator.get_or_create_code(receipt.id)
    print(f"Share code: {code} -> {generator.resolve_code(code.lower())}")

    for guest_id, name in [("ben", "Ben"), ("cho", "Cho")]:
        receipt = add_participant(
            receipt, Participant(id=guest_id, display_name=name, is_guest=True)
        )

    pizza, pasta, wine = items
    items = [
        claim_item(pizza, "ana"),
        claim_item(pasta, "ben"),
        assign_item(wine, ["ana", "ben", "cho"]),
    ]
    receipt = confirm_tip(receipt, "ana")

    summary = summarize_receipt(receipt, items)
    print(f"Claimed {summary.progress_percentage:.0f}% of {summary.subtotal_cents} cents")
    for share in summary.shares:
        name = receipt.participant(share.participant_id).display_name
        print(
            f"  {name}: {share.total_cents / 100:.2f} {summary.currency} "
            f"(items {share.subtotal_cents}, tax {share.tax_cents}, tip {share.tip_cents})"
        )


if __name__ == "__main__":
    main()
