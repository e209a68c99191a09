"""
terra-inform: AI-assisted analysis for the Terraform CLI.

terra-inform wraps terraform. The output of ``plan`` and ``apply`` is shown
to the user as usual and, in parallel, sent through a set of analysis checks
executed against a language model. Results are printed in a fixed order once
every check has finished.

Key Components:
    - checks: Check interface plus the Summarizer and DowntimeAnalyzer checks
    - provider_client: Contract for running one check against a model backend
    - openai_client / bedrock_client: OpenAI and AWS Bedrock backends
    - dispatcher: Runs a batch of checks concurrently, reassembles results in order
    - terraform_runner: Runs terraform, streaming and capturing its output
    - cli: terra-inform and terrasummary entry points

Architecture:
    terraform output → dispatcher ⇉ provider client (one task per check) → ordered results

Environment Variables:
    TERRA_INFORM_MODEL_PROVIDER: openai or bedrock (default: openai)
    TERRA_INFORM_MODEL_NAME: Model name (default: gpt-4o)
    OPENAI_API_KEY: OpenAI credential (openai provider)
    AWS_REGION: Bedrock region (bedrock provider)
    TERRA_INFORM_CHECKS: Checks to run (default: summarizer,downtime-analyzer)

Usage:
    terra-inform -m gpt-4o-mini plan
    terra-inform apply

Version: 0.1.0
License: MIT
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
