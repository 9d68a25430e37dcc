"""
HTML email rendering

Pure functions: data in, markup out. Nothing here sends mail or touches the
database.
"""
from dataclasses import dataclass
from html import escape
from typing import Dict, List, Optional

from review_responder.config import settings

BRAND_NAME = "Local Review Responder"
BRAND_COLOR = "#2563eb"


@dataclass
class NewReviewSummary:
    """One new review as shown in the digest email"""
    location_title: str
    reviewer_name: str
    star_rating: int
    comment: Optional[str] = None


def _stars(rating: int) -> str:
    rating = max(0, min(5, int(rating)))
    return "★" * rating + "☆" * (5 - rating)


def _layout(title: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f3f4f6; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f3f4f6; padding: 40px 20px;">
    <tr>
      <td align="center">
        <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 12px; overflow: hidden;">
          <tr>
            <td style="background-color: {BRAND_COLOR}; padding: 32px 40px; text-align: center;">
              <h1 style="color: #ffffff; margin: 0; font-size: 24px; font-weight: 700;">&#11088; {BRAND_NAME}</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 40px;">
{body}
            </td>
          </tr>
          <tr>
            <td style="background-color: #f9fafb; padding: 24px 40px; border-top: 1px solid #e5e7eb;">
              <p style="color: #9ca3af; font-size: 12px; line-height: 18px; margin: 0; text-align: center;">{footer}</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>"""


def _greeting(name: Optional[str]) -> str:
    return f"Hi {escape(name)}," if name else "Hi there,"


def new_reviews_subject(count: int) -> str:
    return f"{count} new review{'s' if count != 1 else ''} on {BRAND_NAME}"


def group_reviews_by_location(reviews: List[NewReviewSummary]) -> Dict[str, List[NewReviewSummary]]:
    """Group reviews under their location title, keeping first-seen order"""
    grouped: Dict[str, List[NewReviewSummary]] = {}
    for review in reviews:
        grouped.setdefault(review.location_title, []).append(review)
    return grouped


def render_new_reviews_email(name: Optional[str], reviews: List[NewReviewSummary]) -> str:
    """Digest of new reviews found across all of a user's locations"""
    app_url = settings.APP_BASE_URL
    sections = []

    for location_title, location_reviews in group_reviews_by_location(reviews).items():
        rows = []
        for review in location_reviews:
            comment = (
                f'<p style="color: #4b5563; font-size: 14px; line-height: 22px; margin: 8px 0 0 0;">{escape(review.comment)}</p>'
                if review.comment
                else '<p style="color: #9ca3af; font-size: 14px; font-style: italic; margin: 8px 0 0 0;">No comment</p>'
            )
            rows.append(
                '<tr><td style="padding: 16px; border: 1px solid #e5e7eb; border-radius: 8px;">'
                f'<span style="color: #f59e0b; font-size: 16px;">{_stars(review.star_rating)}</span>'
                f'<strong style="color: #111827; font-size: 14px; margin-left: 8px;">{escape(review.reviewer_name)}</strong>'
                f"{comment}</td></tr>"
            )
        sections.append(
            f'<h2 style="color: #111827; font-size: 16px; margin: 24px 0 12px 0;">{escape(location_title)} '
            f'<span style="color: #6b7280; font-weight: 400;">({len(location_reviews)})</span></h2>'
            f'<table width="100%" cellpadding="0" cellspacing="8">{"".join(rows)}</table>'
        )

    body = f"""              <p style="color: #111827; font-size: 18px; font-weight: 600; margin: 0 0 16px 0;">{_greeting(name)}</p>
              <p style="color: #4b5563; font-size: 16px; line-height: 24px; margin: 0;">
                You have {len(reviews)} new review{'s' if len(reviews) != 1 else ''} waiting for a reply.
              </p>
              {''.join(sections)}
              <p style="text-align: center; margin: 32px 0 0 0;">
                <a href="{escape(app_url)}/dashboard/reviews" style="display: inline-block; background-color: {BRAND_COLOR}; color: #ffffff; text-decoration: none; padding: 14px 32px; border-radius: 8px; font-size: 16px; font-weight: 600;">Reply to reviews</a>
              </p>"""

    footer = "You're receiving this because new reviews were synced for your locations."
    return _layout(new_reviews_subject(len(reviews)), body, footer)


def render_welcome_email(name: Optional[str]) -> str:
    app_url = settings.APP_BASE_URL
    body = f"""              <p style="color: #111827; font-size: 18px; font-weight: 600; margin: 0 0 16px 0;">{_greeting(name)}</p>
              <p style="color: #4b5563; font-size: 16px; line-height: 24px; margin: 0 0 24px 0;">
                Welcome to {BRAND_NAME}! Connect the Google account that manages your Business Profile and your locations and reviews will sync automatically.
              </p>
              <p style="color: #4b5563; font-size: 14px; line-height: 22px; margin: 0 0 24px 0;">
                You'll need Owner or Manager access on the profile. Every location starts with a {settings.STRIPE_TRIAL_DAYS}-day free trial.
              </p>
              <p style="text-align: center; margin: 0;">
                <a href="{escape(app_url)}/login" style="display: inline-block; background-color: {BRAND_COLOR}; color: #ffffff; text-decoration: none; padding: 14px 32px; border-radius: 8px; font-size: 16px; font-weight: 600;">Log In to Your Account</a>
              </p>"""
    footer = f"You're receiving this email because you created an account on {BRAND_NAME}."
    return _layout(f"Welcome to {BRAND_NAME}", body, footer)
