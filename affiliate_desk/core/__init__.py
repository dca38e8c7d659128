"""Pure helpers: visibility rules, incentive tiers, reports and formatting."""
