# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Keep machine-specific values in .env (local, gitignored).

This file exists to make the repo self-documenting without opening config.py.
"""

ENV_VARS = {
    # App / logging
    "AGENT_DISPATCH_APP_NAME": "App display name (default: agent-dispatch).",
    "AGENT_DISPATCH_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "AGENT_DISPATCH_DATA_DIR": "Local data directory for log files (default: .local/agent_dispatch).",
    "AGENT_DISPATCH_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Worker pool
    "AGENT_DISPATCH_WORKER_COUNT": "Number of agents in the pool (default: 3, minimum 1).",
    "AGENT_DISPATCH_REPO_PATH": "Git working tree the agents run in (default: GIT_REPO_PATH, else cwd).",
    "GIT_REPO_PATH": "Shorter alias for AGENT_DISPATCH_REPO_PATH.",
    "AGENT_DISPATCH_BRANCH_PREFIX": "Prefix of per-task branch names (default: task-).",
    "AGENT_DISPATCH_STRICT_VALIDATION": "Reject empty descriptions and unknown priorities (default: false).",
    # Agent program
    "AGENT_DISPATCH_AGENT_COMMAND": "Agent CLI started in direct mode (default: claude).",
    "AGENT_DISPATCH_AGENT_ARGS": "Comma/space separated arguments for the agent CLI (default: ask).",
    "AGENT_DISPATCH_WRAPPER_SCRIPT": "Optional wrapper script; used (wrapped mode) only if the file exists.",
    "AGENT_DISPATCH_WRAPPER_INTERPRETER": "Interpreter for the wrapper script (default: node).",
    "AGENT_DISPATCH_BOOTSTRAP_PHRASE": (
        "Wrapped mode sends the task once this phrase appears in the output "
        "(default: 'Enter your programming task or question:')."
    ),
    # Supervisor timings (seconds)
    "AGENT_DISPATCH_CONFIRM_STEP_DELAY_SECONDS": "Gap between auto-confirmation keystrokes (default: 0.3).",
    "AGENT_DISPATCH_CONFIRM_RESCAN_INTERVAL_SECONDS": "Full-output prompt rescan period, 0 disables (default: 2.0).",
    "AGENT_DISPATCH_WRITE_RETRY_DELAY_SECONDS": "Delay before retrying a rejected stdin write (default: 0.1).",
    "AGENT_DISPATCH_TASK_TIMEOUT_SECONDS": "Kill an agent run after this many seconds, 0 disables (default: 0).",
}
