"""Pipeline steps package.

This package contains all the individual steps of the email-rule pipeline:
- field_resolver: Loads form fields and builds the multi-identifier field index
- data_enricher: Builds the enriched data context for the submission
- rule_selector: Loads, parses and orders the form's active rules
- condition_evaluator: Matches each rule against the context
- email_dispatcher: Resolves recipients, renders templates and sends
"""
