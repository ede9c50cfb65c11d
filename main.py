"""
Link Feed Application

This is the main entry point for the Link Feed client.
It shows the shared link feed in the terminal and lets the signed-in user
post links, like other people's posts, and sign in or out.
"""

import argparse
import logging
import sys
from typing import List, Optional

from config import settings
from config.validators import get_config_summary, validate_settings
from data.auth_client import AuthClient
from data.models import Post
from data.rest_client import RestClient
from services.feed_service import FeedController
from services.session_service import BackendSessionHolder
from utils.exceptions import ConfigurationError
from utils.helpers import initial
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)


def create_feed_controller(auth: Optional[AuthClient] = None,
                           store: Optional[RestClient] = None) -> FeedController:
    """
    Wire the hosted backend clients into a feed controller.

    Args:
        auth: Auth client to use; built from settings when omitted.
        store: Posts client to use; built from settings when omitted.

    Returns:
        FeedController: A controller that has not been mounted yet.
    """
    auth = auth or AuthClient()
    store = store or RestClient(access_token=auth.access_token)
    return FeedController(store, BackendSessionHolder(auth))


def render_post(post: Post) -> str:
    """Format one post as a few lines of text."""
    author = post.author_name if post.author_name else "Anonymous"
    likes = f"{post.likes} like" + ("" if post.likes == 1 else "s")
    return f"#{post.id}  {post.title}\n     {post.link}\n     by {author} - {likes}"


def render_feed(posts: List[Post]) -> str:
    if not posts:
        return "No posts yet."
    return "\n\n".join(render_post(post) for post in posts)


# =============================================================================
# Commands
# =============================================================================

def cmd_list(controller: FeedController, args) -> int:
    with controller:
        print(render_feed(controller.posts))
    return 0


def cmd_like(controller: FeedController, args) -> int:
    with controller:
        if controller.session.identity is None:
            print("Sign in to like posts.")
            return 1
        updated = controller.like(args.post_id)
        if updated is None:
            print(f"Post #{args.post_id} was not liked.")
            return 1
        print(render_post(updated))
    return 0


def cmd_post(controller: FeedController, args) -> int:
    with controller:
        if controller.session.identity is None:
            print("Sign in to post.")
            return 1
        controller.open_dialog()
        controller.update_draft(title=args.title, link=args.link, is_anonymous=args.anonymous)
        if not controller.submit():
            print("Post was not submitted.")
            return 1
        if controller.last_posted is not None:
            print(render_post(controller.last_posted))
        else:
            print("Post submitted.")
    return 0


def cmd_login(controller: FeedController, args) -> int:
    session = controller.session
    if args.callback:
        identity = session.complete_sign_in(args.callback)
        if identity is None:
            print("Sign-in failed.")
            return 1
        print(f"Signed in as {identity.name or 'unnamed user'}")
        return 0

    url = session.sign_in(args.provider)
    print("Open this URL to sign in, then run `login --callback <redirected URL>`:")
    print(url)
    return 0


def cmd_logout(controller: FeedController, args) -> int:
    with controller:
        controller.session.sign_out()
    print("Signed out.")
    return 0


def cmd_whoami(controller: FeedController, args) -> int:
    controller.session.start()
    try:
        identity = controller.session.identity
        if identity is None:
            print("Not signed in.")
            return 1
        print(f"[{initial(identity.name) or '?'}] {identity.name}")
        if identity.image:
            print(identity.image)
    finally:
        controller.session.close()
    return 0


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Link Feed')
    parser.add_argument('--log-file', type=str, default=None, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=None, help='Logging level')

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('list', help='Show the feed, newest first')
    p.set_defaults(handler=cmd_list)

    p = sub.add_parser('like', help='Like a post')
    p.add_argument('post_id', type=int)
    p.set_defaults(handler=cmd_like)

    p = sub.add_parser('post', help='Share a link')
    p.add_argument('--title', required=True)
    p.add_argument('--link', required=True)
    p.add_argument('--anonymous', action='store_true', help='Post without attribution')
    p.set_defaults(handler=cmd_post)

    p = sub.add_parser('login', help='Sign in with an OAuth provider')
    p.add_argument('--provider', default=None, help='OAuth provider (default from settings)')
    p.add_argument('--callback', default=None, help='Redirect URL received after signing in')
    p.set_defaults(handler=cmd_login)

    p = sub.add_parser('logout', help='Sign out')
    p.set_defaults(handler=cmd_logout)

    p = sub.add_parser('whoami', help='Show the signed-in user')
    p.set_defaults(handler=cmd_whoami)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level or settings.LOG_LEVEL, logging.INFO)
    setup_file_logging(args.log_file, log_level)

    try:
        validate_settings()
        logger.debug(f"Configuration: {get_config_summary()}")
        controller = create_feed_controller()
        exit_code = args.handler(controller, args)
    except ConfigurationError as e:
        logger.error(str(e))
        exit_code = 2
    except Exception as e:
        logger.error(f"Unhandled exception in Link Feed: {e}", exc_info=True)
        exit_code = 2

    logger.debug(f"Link Feed finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
