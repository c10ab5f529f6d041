"""Navigator Messages Meta information.
   Navigator Messages produces tamper-evident, optionally encrypted tokens
   that can be handed to untrusted clients and validated later.
"""
__title__ = 'navigator_messages'
__description__ = (
   'Navigator Messages produces signed and encrypted tokens '
   'with expiration and purpose metadata.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-messages'
