"""Channel messaging pipeline -- trigger matching, variants, handlers and the bot."""
