"""Client-side tracking script.

Served to the membership site. On a landing page carrying the configured
parameter it stores the tags in the ``mepr_ac_tags_js`` cookie, and on any
page it injects hidden ``mepr_ac_tags``/``mepr_ac_url`` fields into
MemberPress signup forms, so attribution survives a lost server session.
"""

from acbridge.models.attribution import COOKIE_MAX_AGE
from acbridge.utils.cookies import CLIENT_TAGS_COOKIE
from acbridge.utils.request_context import POSTED_TAGS_FIELD, POSTED_URL_FIELD

FORM_SELECTOR = 'form.mepr-signup-form, form.mepr_form, form[action*="mepr"]'


def _escape_js_string(s: str) -> str:
    """Escape a string for a single-quoted JavaScript literal."""
    if not s:
        return ""
    return (
        s.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("</script>", "<\\/script>")
    )


def render_tracking_script(param_name: str, debug: bool = False) -> str:
    """Render the tracking script.

    Args:
        param_name: Query parameter whose value becomes the tag.
        debug: Log to the browser console.

    Returns:
        JavaScript source.
    """
    param = _escape_js_string(param_name)
    selector = _escape_js_string(FORM_SELECTOR)
    debug_flag = "true" if debug else "false"

    return f"""(function() {{
  var DEBUG = {debug_flag};
  var PARAM_NAME = '{param}';
  var FORM_SELECTOR = '{selector}';
  var TAGS_FIELD = '{POSTED_TAGS_FIELD}';
  var URL_FIELD = '{POSTED_URL_FIELD}';

  function debugLog(message, data) {{
    if (DEBUG) {{
      console.log('[acbridge] ' + message, data || '');
    }}
  }}

  function extractTags() {{
    var value = new URLSearchParams(window.location.search).get(PARAM_NAME);
    return value ? [value.trim().toLowerCase()] : [];
  }}

  var tags = extractTags();
  if (tags.length > 0) {{
    var cookieData = JSON.stringify({{
      tags: tags,
      timestamp: Math.floor(Date.now() / 1000),
      url: window.location.href
    }});
    var expires = new Date(Date.now() + {COOKIE_MAX_AGE} * 1000);
    document.cookie = '{CLIENT_TAGS_COOKIE}=' + encodeURIComponent(cookieData) +
      '; expires=' + expires.toUTCString() + '; path=/';
    debugLog('Tags saved to cookie', tags);
  }}

  function setHiddenField(form, name, value) {{
    var field = form.querySelector('input[name="' + name + '"]');
    if (!field) {{
      field = document.createElement('input');
      field.type = 'hidden';
      field.name = name;
      form.appendChild(field);
    }}
    field.value = value;
  }}

  function injectIntoForms() {{
    var forms = document.querySelectorAll(FORM_SELECTOR);
    forms.forEach(function(form) {{
      if (tags.length > 0) {{
        setHiddenField(form, TAGS_FIELD, tags.join(','));
      }}
      setHiddenField(form, URL_FIELD, window.location.href);
      if (!form.dataset.acbridgeListener) {{
        form.addEventListener('submit', function() {{
          if (tags.length > 0 && !form.querySelector('input[name="' + TAGS_FIELD + '"]')) {{
            setHiddenField(form, TAGS_FIELD, tags.join(','));
          }}
          if (!form.querySelector('input[name="' + URL_FIELD + '"]')) {{
            setHiddenField(form, URL_FIELD, window.location.href);
          }}
          debugLog('Form submitting with tags', tags);
        }});
        form.dataset.acbridgeListener = 'true';
      }}
    }});
    debugLog('Forms found', forms.length);
    return forms.length;
  }}

  if (document.readyState === 'loading') {{
    document.addEventListener('DOMContentLoaded', injectIntoForms);
  }} else {{
    injectIntoForms();
  }}

  // Forms rendered after load (AJAX, page builders)
  var observer = new MutationObserver(function(mutations) {{
    var found = mutations.some(function(mutation) {{
      return Array.prototype.some.call(mutation.addedNodes, function(node) {{
        return node.nodeType === 1 && (
          (node.matches && node.matches(FORM_SELECTOR)) ||
          (node.querySelector && node.querySelector(FORM_SELECTOR))
        );
      }});
    }});
    if (found) {{
      injectIntoForms();
    }}
  }});
  observer.observe(document.documentElement, {{ childList: true, subtree: true }});

  setTimeout(injectIntoForms, 1000);
  setTimeout(injectIntoForms, 3000);
  debugLog('Tracking initialized for parameter "' + PARAM_NAME + '"', tags);
}})();
"""
