# Fixed texts sent back to LINE users.
# The six formats below are the only ones dates.parse_user_message accepts.
HOW_TO = """You can create todo list by using these formats:
	1) Go shopping : 25/5/18 : 13:00
	2) Go shopping : 25/5/18
	3) Go shopping : today : 15:30
	4) Go shopping : today
	5) Go shopping : tomorrow : 18:00
	6) Go shopping : tomorrow
You can edit todo list by input word 'edit'"""

WELCOME = "Thanks for adding me. I'm Choo Todo Bot, I'm here to help you to manage your tasks.\n"

TASK_CREATED = "Task has been created."

EDIT_KEYWORD = "edit"
EDIT_REPLY = "Please go to {edit_url}"

# Reminder template pieces
REMINDER_GREETING = "Hi there,\n"
REMINDER_TODO_HEADER = "Tasks to be done:\n"
REMINDER_ALL_DONE = "Well done, you have no remaining tasks to be done :)\n"
REMINDER_DONE_HEADER = "Tasks completed:\n"
REMINDER_PINNED = "*** "
REMINDER_UNPINNED = "    "
REMINDER_OVERDUE = " (overdue)"
REMINDER_FOOTER = "{remaining} of {total} remaining, just do it!"
