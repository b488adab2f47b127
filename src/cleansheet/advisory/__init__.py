from cleansheet.advisory.client import AdvisoryClient, parse_fix_response

__all__ = ["AdvisoryClient", "parse_fix_response"]
