"""Email templates.

Templates are plain format strings rendered into an HTML body and a plain
text fallback. They are looked up by name so the moderation email template
can be chosen through configuration.
"""

import html
from collections.abc import Callable
from datetime import datetime


# ==============================================================================
# Base Template
# ==============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #FAFBFC; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #FAFBFC;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; max-width: 600px;">
          <tr>
            <td style="padding: 40px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 24px 40px; background-color: #F9FAFB; border-top: 1px solid #E5E7EB; border-radius: 0 0 12px 12px;">
              <p style="margin: 0; font-size: 12px; color: #8E959E; text-align: center; line-height: 1.6;">
                &copy; {year}. This email was sent automatically, please do not reply.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


# ==============================================================================
# Template: Comment Moderation Request
# ==============================================================================

COMMENT_MODERATION_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 24px; font-weight: 600; color: #1A1D23; line-height: 1.3;">
  A new comment is waiting for moderation
</h1>

<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  <strong style="color: #1A1D23;">{name}</strong> ({email}) wrote:
</p>

<div style="background-color: #F3F4F6; border-left: 4px solid #9CA3AF; padding: 12px 16px; border-radius: 0 8px 8px 0; margin: 0 0 24px;">
  <p style="margin: 0; font-size: 15px; color: #1A1D23; line-height: 1.6; white-space: pre-line;">{comment}</p>
</div>

<p style="text-align: center; margin: 24px 0;">
  <a href="{approve_url}" style="display: inline-block; background-color: #16A34A; color: #FFFFFF; padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 0 8px;">Approve</a>
  <a href="{reject_url}" style="display: inline-block; background-color: #DC2626; color: #FFFFFF; padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 0 8px;">Reject</a>
</p>

<p style="margin: 24px 0 0; font-size: 13px; color: #6B7280; line-height: 1.6;">
  Only the first click counts. Links stop working once the comment is moderated.
</p>
"""


def render_comment_moderation(
    name: str,
    email: str,
    comment: str,
    approve_url: str,
    reject_url: str,
) -> tuple[str, str]:
    """Render the moderation request sent to moderators.

    Args:
        name: Author display name
        email: Author email
        comment: Comment text
        approve_url: Absolute link accepting the comment
        reject_url: Absolute link rejecting the comment

    Returns:
        Tuple of (html_content, plain_text_content)
    """
    content = COMMENT_MODERATION_CONTENT.format(
        name=html.escape(name),
        email=html.escape(email),
        comment=html.escape(comment),
        approve_url=html.escape(approve_url, quote=True),
        reject_url=html.escape(reject_url, quote=True),
    )
    body_html = BASE_TEMPLATE.format(
        title="Comment moderation",
        content=content,
        year=datetime.now().year,
    )

    plain_text = f"""
A new comment is waiting for moderation

{name} ({email}) wrote:

{comment}

Approve: {approve_url}
Reject: {reject_url}

Only the first click counts. Links stop working once the comment is moderated.
"""
    return body_html, plain_text.strip()


Renderer = Callable[..., tuple[str, str]]

TEMPLATES: dict[str, Renderer] = {
    "comment_moderation": render_comment_moderation,
}


def render_template(name: str, /, **context: str) -> tuple[str, str]:
    """Render a registered template by name.

    ``name`` is positional-only: template contexts use a ``name`` key too.

    Raises:
        KeyError: If no template is registered under name
    """
    try:
        renderer = TEMPLATES[name]
    except KeyError:
        msg = f"Unknown email template: {name}"
        raise KeyError(msg) from None
    return renderer(**context)
