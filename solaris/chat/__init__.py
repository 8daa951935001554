"""Chat log, approval-gated proposals and smart-create suggestions.

Import submodules directly (``solaris.chat.session`` and friends); this
package stays light so ``solaris.ai`` can depend on ``solaris.chat.models``.
"""
