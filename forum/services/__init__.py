# Services package.
#
# Each module exposes async functions holding the business rules for one
# forum aggregate:
#
#   user_service           : registration, activation, profile, login, sweep,
#                            mention notifications
#   private_message_service: mailboxes, drafts, read/delete status lifecycle
#   poll_service           : poll lookup and voting
#   topic_service          : topics, posts, poll attachment
#   banner_service         : positioned banners with cache-aside reads
#
# Service functions take an AsyncSession first and flush without
# committing; the caller owns the transaction.
