"""Pure helpers: lead scoring, quote workflow and email templates."""
