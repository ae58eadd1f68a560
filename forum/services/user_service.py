"""
User service: registration, activation, profile management and mention
notifications.

Mail is attempted before the database change it announces wherever a
failed mail would leave the user stuck (password restore).  Registration
stores the user first so the activation mail can carry the stored key; a
failed activation mail rolls the registration back with the request.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.config import settings
from forum.exceptions import MailingFailedError, NoConnectionError, NotFoundError, UnexpectedError
from forum.mail import mail_service
from forum.mentions import parse_mentioned_usernames
from forum.models import Post, PostMention, User, utcnow
from forum.repositories import PostMentionRepository, UserRepository
from forum.schemas import ProfileUpdate, UserRegister
from forum.security import activation_key, hash_password, random_password, verify_password

logger = logging.getLogger(__name__)


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "signature": user.signature,
        "location": user.location,
        "language": user.language,
        "page_size": user.page_size,
        "enabled": user.enabled,
        "registration_date": user.registration_date,
        "last_login": user.last_login,
        "mentioning_notifications_enabled": user.mentioning_notifications_enabled,
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await UserRepository(db).get(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def get_by_username(db: AsyncSession, username: str) -> User:
    user = await UserRepository(db).get_by_username(username)
    if user is None:
        logger.info("User [%s] not found", username)
        raise NotFoundError("User", username)
    return user


async def get_usernames(db: AsyncSession, prefix: str) -> list[str]:
    return await UserRepository(db).get_usernames(prefix, settings.USERNAME_SUGGESTION_LIMIT)


# ---------------------------------------------------------------------------
# Registration and activation
# ---------------------------------------------------------------------------

async def register_user(db: AsyncSession, data: UserRegister) -> User:
    """
    Store a new, not yet activated user and mail the activation link.

    Username and email uniqueness is enforced by the schema constraints;
    the router turns the resulting ``IntegrityError`` into a 409.
    """
    user = User(
        username=data.username,
        email=data.email,
        password=hash_password(data.password),
        language=data.language,
        enabled=False,
        uuid=activation_key(),
        registration_date=utcnow(),
    )
    await UserRepository(db).add(user)
    await mail_service.send_account_activation_mail(user)
    logger.info("User registered: %s", user.username)
    return user


async def activate_account(db: AsyncSession, uuid: str) -> User:
    user = await UserRepository(db).get_by_uuid(uuid)
    if user is None:
        raise NotFoundError("User", uuid)
    if not user.enabled:
        user.enabled = True
        await db.flush()
        logger.info("User activated: %s", user.username)
    return user


async def delete_unactivated_accounts(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete accounts left unactivated longer than the activation window."""
    cutoff = (now or utcnow()) - timedelta(hours=settings.ACCOUNT_ACTIVATION_TTL_HOURS)
    repo = UserRepository(db)
    users = await repo.get_non_activated_before(cutoff)
    for user in users:
        await repo.delete(user)
    if users:
        logger.info("Deleted %d unactivated account(s)", len(users))
    return len(users)


# ---------------------------------------------------------------------------
# Credentials and profile
# ---------------------------------------------------------------------------

async def restore_password(db: AsyncSession, email: str) -> None:
    """
    Replace the password of the user owning *email* with a random one.

    The new password is mailed first; when delivery fails the
    ``MailingFailedError`` propagates and the stored password is untouched.
    """
    user = await UserRepository(db).get_by_email(email)
    if user is None:
        raise NotFoundError("User", email)

    new_password = random_password(settings.RESTORED_PASSWORD_LENGTH)
    await mail_service.send_password_recovery_mail(user, new_password)
    user.password = hash_password(new_password)
    await db.flush()
    logger.info("New random password was set for user %s", user.username)


async def save_edited_profile(db: AsyncSession, user_id: int, data: ProfileUpdate) -> User:
    user = await get_user(db, user_id)

    update_data = data.model_dump(exclude={"new_password"})
    for field, value in update_data.items():
        setattr(user, field, value)
    if data.new_password is not None:
        user.password = hash_password(data.new_password)

    await db.flush()
    logger.info("Updated user profile. Username: %s", user.username)
    return user


async def login_user(db: AsyncSession, username: str, password: str) -> User | None:
    """
    Check credentials and record the login time.

    Returns None for unknown users, wrong passwords and accounts that are
    not activated yet.
    """
    try:
        user = await UserRepository(db).get_by_username(username)
    except OperationalError as exc:
        logger.error("Credential store unreachable: %s", exc)
        raise NoConnectionError() from exc
    except SQLAlchemyError as exc:
        logger.error("Login of %s failed: %s", username, exc)
        raise UnexpectedError() from exc

    if user is None or not user.enabled or not verify_password(password, user.password):
        return None

    user.last_login = utcnow()
    await db.flush()
    return user



# ---------------------------------------------------------------------------
# Mentions
# ---------------------------------------------------------------------------

async def notify_and_mark_newly_mentioned_users(db: AsyncSession, post: Post) -> list[User]:
    """
    Mail every user mentioned in *post* who has not been mailed about it yet.

    The post's author, disabled accounts and users who turned mention
    notifications off are skipped.  A user whose mail fails stays unmarked,
    so the next edit of the post retries them.  Returns the users mailed.
    """
    usernames = parse_mentioned_usernames(post.body)
    if not usernames:
        return []

    mentions = PostMentionRepository(db)
    already_notified = await mentions.notified_user_ids(post.id)
    notified = []
    for user in await UserRepository(db).get_by_usernames(usernames):
        if (
            user.id in already_notified
            or user.id == post.user_id
            or not user.enabled
            or not user.mentioning_notifications_enabled
        ):
            continue
        try:
            await mail_service.send_user_mentioned_notification(user, post)
        except MailingFailedError:
            logger.warning("Mention notification for post %s to %s failed", post.id, user.username)
            continue
        db.add(PostMention(post_id=post.id, user_id=user.id))
        notified.append(user)

    await db.flush()
    if notified:
        logger.info(
            "Post %s: notified mentioned users %s", post.id, [u.username for u in notified]
        )
    return notified
