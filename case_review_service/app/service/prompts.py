from case_review_service.app.models import CaseRecord

NEXT_STEPS = (
    "Next steps:\n"
    "- Summarize key issue\n"
    "- Decide on shop outreach tone\n"
    "- Highlight missing data if any"
)


def build_case_prompt(case: CaseRecord) -> str:
    """Plain-text brief of a case for pasting into an assistant."""
    lines = [
        f"Case ID: {case.id}",
        f"Store: {case.store_name}" if case.store_name else None,
        f"Product: {case.product_name}" if case.product_name else None,
        f"User Email: {case.user_email}" if case.user_email else None,
        f"Manual Analysis: {case.manual_analysis.text}" if case.manual_analysis and case.manual_analysis.text else None,
        f"Resolution Code: {case.resolution.code}" if case.resolution and case.resolution.code else None,
        f"Status: {case.status}",
        f"Emails Count: {len(case.emails)}",
    ]
    return "\n".join(line for line in lines if line) + "\n\n" + NEXT_STEPS
