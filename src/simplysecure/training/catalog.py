"""Security task catalog: fifteen tasks over three daily challenge sets.

Tasks are identified by a stable slug id; the title is display text and is
also what prerequisites refer to. ``resolve()`` accepts either.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from simplysecure.exceptions import UnknownDayError, UnknownTaskError


class TaskCategory(str, Enum):
    FILEVAULT = "filevault"
    FIREWALL = "firewall"
    PRIVACY = "privacy"
    AUTHENTICATION = "authentication"
    NETWORKING = "networking"
    SYSTEM = "system"
    UPDATES = "updates"
    BACKUP = "backup"
    MONITORING = "monitoring"
    GENERAL = "general"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    TaskCategory.FILEVAULT: "FileVault Encryption",
    TaskCategory.FIREWALL: "Firewall Configuration",
    TaskCategory.PRIVACY: "Privacy Settings",
    TaskCategory.AUTHENTICATION: "Authentication",
    TaskCategory.NETWORKING: "Network Security",
    TaskCategory.SYSTEM: "System Security",
    TaskCategory.UPDATES: "System Updates",
    TaskCategory.BACKUP: "Backup Security",
    TaskCategory.MONITORING: "System Monitoring",
    TaskCategory.GENERAL: "General Security",
}


class TaskDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def base_xp(self) -> int:
        """Display metadata only. Task rewards are explicit per task."""
        return {"beginner": 25, "intermediate": 50, "advanced": 100}[self.value]


@dataclass(frozen=True)
class SecurityTask:
    id: str
    title: str
    description: str
    detailed_instructions: str
    category: TaskCategory
    difficulty: TaskDifficulty
    estimated_time_minutes: int
    xp_reward: int
    day: int
    order: int
    prerequisites: tuple[str, ...] = ()
    verification_command: str | None = None
    verification_description: str | None = None


@dataclass(frozen=True)
class DailyChallengeSet:
    day: int
    title: str
    description: str
    theme: str
    completion_badge: str
    tasks: tuple[SecurityTask, ...] = field(default_factory=tuple)

    @property
    def total_xp(self) -> int:
        return sum(t.xp_reward for t in self.tasks)

    @property
    def estimated_time_minutes(self) -> int:
        return sum(t.estimated_time_minutes for t in self.tasks)

    @property
    def task_ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.tasks)


class CatalogError(ValueError):
    """Raised when a catalog definition is internally inconsistent."""


class Catalog:
    """Immutable, validated collection of daily challenge sets."""

    def __init__(self, days: Iterable[DailyChallengeSet]) -> None:
        self._days = tuple(sorted(days, key=lambda d: d.day))
        self._by_id: dict[str, SecurityTask] = {}
        self._by_title: dict[str, SecurityTask] = {}
        self._validate()

    def _validate(self) -> None:
        if not self._days:
            raise CatalogError("Catalog needs at least one day")
        expected = list(range(1, len(self._days) + 1))
        if [d.day for d in self._days] != expected:
            raise CatalogError(f"Days must be contiguous from 1, got {[d.day for d in self._days]}")

        for challenge in self._days:
            for task in challenge.tasks:
                if task.day != challenge.day:
                    raise CatalogError(f"Task {task.id!r} declares day {task.day} but sits in day {challenge.day}")
                if task.id in self._by_id:
                    raise CatalogError(f"Duplicate task id {task.id!r}")
                if task.title in self._by_title:
                    raise CatalogError(f"Duplicate task title {task.title!r}")
                if task.xp_reward <= 0:
                    raise CatalogError(f"Task {task.id!r} must reward positive XP")
                self._by_id[task.id] = task
                self._by_title[task.title] = task

        for task in self._by_id.values():
            for prereq in task.prerequisites:
                if prereq not in self._by_title:
                    raise CatalogError(f"Task {task.id!r} has unknown prerequisite {prereq!r}")

    @property
    def days(self) -> tuple[DailyChallengeSet, ...]:
        return self._days

    @property
    def last_day(self) -> int:
        return self._days[-1].day

    def __iter__(self) -> Iterator[SecurityTask]:
        for challenge in self._days:
            yield from challenge.tasks

    def __len__(self) -> int:
        return len(self._by_id)

    def day(self, day: int) -> DailyChallengeSet:
        if not 1 <= day <= len(self._days):
            raise UnknownDayError(day)
        return self._days[day - 1]

    def get(self, task_id: str) -> SecurityTask:
        try:
            return self._by_id[task_id]
        except KeyError:
            raise UnknownTaskError(task_id) from None

    def resolve(self, ref: str) -> SecurityTask:
        """Find a task by slug id, falling back to its title."""
        task = self._by_id.get(ref) or self._by_title.get(ref)
        if task is None:
            raise UnknownTaskError(ref)
        return task

    def prerequisites_of(self, task: SecurityTask) -> list[SecurityTask]:
        return [self._by_title[title] for title in task.prerequisites]

    def in_category(self, category: TaskCategory | str) -> list[SecurityTask]:
        category = TaskCategory(category)
        return [t for t in self if t.category is category]


_OPEN_SETTINGS = "1. Open System Preferences (System Settings on macOS Ventura+)\n"

DAY_1 = DailyChallengeSet(
    day=1,
    title="Foundation Security",
    description="Build the fundamental security foundation for your Mac",
    theme="Essential Security Basics",
    completion_badge="\U0001f6e1\ufe0f",
    tasks=(
        SecurityTask(
            id="enable-filevault",
            title="Enable FileVault Encryption",
            description="Protect your data with full-disk encryption",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Security & Privacy > FileVault\n"
                "3. Click \"Turn On FileVault\"\n"
                "4. Choose to store the recovery key with Apple or create a local key\n"
                "5. Restart your Mac when prompted\n\n"
                "This encrypts your entire startup disk using XTS-AES-128 encryption with a 256-bit key."
            ),
            category=TaskCategory.FILEVAULT,
            difficulty=TaskDifficulty.BEGINNER,
            estimated_time_minutes=15,
            xp_reward=50,
            verification_command="sudo fdesetup status",
            verification_description="Check if FileVault is enabled",
            day=1,
            order=1,
        ),
        SecurityTask(
            id="enable-firewall",
            title="Enable macOS Firewall",
            description="Block unauthorized network connections",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Security & Privacy > Firewall\n"
                "3. Click the lock icon and enter your password\n"
                "4. Click \"Turn On Firewall\"\n"
                "5. Click \"Firewall Options\" and configure:\n"
                "   - Block all incoming connections\n"
                "   - Enable stealth mode\n"
                "   - Automatically allow signed software\n\n"
                "This prevents unauthorized applications from accepting incoming connections."
            ),
            category=TaskCategory.FIREWALL,
            difficulty=TaskDifficulty.BEGINNER,
            estimated_time_minutes=10,
            xp_reward=40,
            verification_command="sudo /usr/libexec/ApplicationFirewall/socketfilterfw --getglobalstate",
            verification_description="Check firewall status",
            day=1,
            order=2,
        ),
        SecurityTask(
            id="configure-privacy-settings",
            title="Configure Privacy Settings",
            description="Control which apps access your personal data",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Security & Privacy > Privacy\n"
                "3. Review and configure access for:\n"
                "   - Location Services\n"
                "   - Contacts\n"
                "   - Calendars\n"
                "   - Photos\n"
                "   - Camera\n"
                "   - Microphone\n"
                "4. Remove unnecessary app permissions\n"
                "5. Enable \"Require password immediately after sleep or screen saver begins\"\n\n"
                "This gives you granular control over your personal data."
            ),
            category=TaskCategory.PRIVACY,
            difficulty=TaskDifficulty.BEGINNER,
            estimated_time_minutes=20,
            xp_reward=35,
            verification_command="defaults read com.apple.screensaver askForPassword",
            verification_description="Check if password is required after screensaver",
            day=1,
            order=3,
        ),
        SecurityTask(
            id="enable-automatic-updates",
            title="Enable Automatic Updates",
            description="Keep your system secure with automatic security patches",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Software Update\n"
                "3. Check \"Automatically keep my Mac up to date\"\n"
                "4. Click \"Advanced...\" and enable:\n"
                "   - Check for updates\n"
                "   - Download new updates when available\n"
                "   - Install macOS updates\n"
                "   - Install app updates from the App Store\n"
                "   - Install system data files and security updates\n\n"
                "This ensures you receive critical security updates automatically."
            ),
            category=TaskCategory.UPDATES,
            difficulty=TaskDifficulty.BEGINNER,
            estimated_time_minutes=5,
            xp_reward=25,
            verification_command="defaults read /Library/Preferences/com.apple.SoftwareUpdate AutomaticCheckEnabled",
            verification_description="Check if automatic updates are enabled",
            day=1,
            order=4,
        ),
        SecurityTask(
            id="set-strong-login-password",
            title="Set Strong Login Password",
            description="Create a secure password for your user account",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Users & Groups\n"
                "3. Click the lock icon and enter your password\n"
                "4. Select your user account\n"
                "5. Click \"Change Password\"\n"
                "6. Create a strong password with:\n"
                "   - At least 12 characters\n"
                "   - Mix of uppercase, lowercase, numbers, and symbols\n"
                "   - No personal information\n"
                "7. Consider using a password manager\n\n"
                "A strong password is your first line of defense."
            ),
            category=TaskCategory.AUTHENTICATION,
            difficulty=TaskDifficulty.BEGINNER,
            estimated_time_minutes=10,
            xp_reward=30,
            verification_command=None,
            verification_description="Manual verification - ensure password meets requirements",
            day=1,
            order=5,
        ),
    ),
)

DAY_2 = DailyChallengeSet(
    day=2,
    title="Advanced Protection",
    description="Implement advanced security measures and monitoring",
    theme="Enhanced Security Configuration",
    completion_badge="\U0001f512",
    tasks=(
        SecurityTask(
            id="configure-dns-privacy",
            title="Configure DNS for Privacy",
            description="Use privacy-focused DNS servers",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Network\n"
                "3. Select your active connection (Wi-Fi or Ethernet)\n"
                "4. Click \"Advanced...\"\n"
                "5. Go to the \"DNS\" tab\n"
                "6. Add these DNS servers:\n"
                "   - Primary: 1.1.1.1 (Cloudflare)\n"
                "   - Secondary: 1.0.0.1 (Cloudflare)\n"
                "   - Alternative: 8.8.8.8 (Google)\n"
                "7. Click \"OK\" and \"Apply\"\n\n"
                "This improves privacy and can speed up your internet connection."
            ),
            category=TaskCategory.NETWORKING,
            difficulty=TaskDifficulty.INTERMEDIATE,
            estimated_time_minutes=15,
            xp_reward=60,
            prerequisites=("Enable macOS Firewall",),
            verification_command="scutil --dns | grep nameserver",
            verification_description="Check current DNS servers",
            day=2,
            order=1,
        ),
        SecurityTask(
            id="enable-two-factor-auth",
            title="Enable Two-Factor Authentication",
            description="Add an extra layer of security to your Apple ID",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Click on your Apple ID at the top\n"
                "3. Go to \"Password & Security\"\n"
                "4. Click \"Turn On Two-Factor Authentication\"\n"
                "5. Follow the setup process:\n"
                "   - Enter your phone number\n"
                "   - Verify with SMS code\n"
                "   - Set up trusted devices\n"
                "6. Test the setup by signing out and back in\n\n"
                "This prevents unauthorized access even if your password is compromised."
            ),
            category=TaskCategory.AUTHENTICATION,
            difficulty=TaskDifficulty.INTERMEDIATE,
            estimated_time_minutes=20,
            xp_reward=75,
            prerequisites=("Set Strong Login Password",),
            verification_command=None,
            verification_description="Manual verification - check Apple ID security settings",
            day=2,
            order=2,
        ),
        SecurityTask(
            id="configure-time-machine",
            title="Configure Time Machine Backup",
            description="Set up encrypted backups for data protection",
            detailed_instructions=(
                "1. Connect an external drive (at least 2x your Mac's storage)\n"
                "2. Open System Preferences (System Settings on macOS Ventura+)\n"
                "3. Go to Time Machine\n"
                "4. Click \"Select Backup Disk\"\n"
                "5. Choose your external drive\n"
                "6. Enable \"Encrypt backups\" for security\n"
                "7. Set a strong encryption password\n"
                "8. Click \"Use Disk\" and wait for initial backup\n\n"
                "Encrypted backups protect your data even if the drive is stolen."
            ),
            category=TaskCategory.BACKUP,
            difficulty=TaskDifficulty.INTERMEDIATE,
            estimated_time_minutes=30,
            xp_reward=80,
            prerequisites=("Enable FileVault Encryption",),
            verification_command="tmutil status",
            verification_description="Check Time Machine backup status",
            day=2,
            order=3,
        ),
        SecurityTask(
            id="disable-unnecessary-services",
            title="Disable Unnecessary Services",
            description="Reduce attack surface by disabling unused services",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Sharing\n"
                "3. Disable unnecessary services:\n"
                "   - Remote Login (unless needed)\n"
                "   - Remote Management\n"
                "   - Screen Sharing (unless needed)\n"
                "   - File Sharing (unless needed)\n"
                "   - Printer Sharing (unless needed)\n"
                "4. Go to General > Handoff and disable if not needed\n"
                "5. Go to General > AirDrop and set to \"Contacts Only\" or \"No One\"\n\n"
                "Fewer enabled services mean fewer potential attack vectors."
            ),
            category=TaskCategory.SYSTEM,
            difficulty=TaskDifficulty.INTERMEDIATE,
            estimated_time_minutes=15,
            xp_reward=55,
            prerequisites=("Enable macOS Firewall",),
            verification_command="sudo launchctl list | grep -v com.apple",
            verification_description="Check running system services",
            day=2,
            order=4,
        ),
        SecurityTask(
            id="set-up-screen-lock",
            title="Set Up Screen Lock",
            description="Configure automatic screen locking for privacy",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Security & Privacy > General\n"
                "3. Set \"Require password\" to \"immediately\" after sleep or screen saver\n"
                "4. Go to Desktop & Screen Saver\n"
                "5. Set screen saver to start after 5-10 minutes\n"
                "6. Go to Energy Saver and set display sleep to 10-15 minutes\n"
                "7. Test by pressing Command+Control+Q to lock screen\n\n"
                "This prevents unauthorized access when you step away from your Mac."
            ),
            category=TaskCategory.PRIVACY,
            difficulty=TaskDifficulty.BEGINNER,
            estimated_time_minutes=10,
            xp_reward=40,
            prerequisites=("Configure Privacy Settings",),
            verification_command="defaults read com.apple.screensaver askForPasswordDelay",
            verification_description="Check screen lock delay setting",
            day=2,
            order=5,
        ),
    ),
)

DAY_3 = DailyChallengeSet(
    day=3,
    title="Security Mastery",
    description="Master advanced security techniques and monitoring",
    theme="Expert-Level Security Hardening",
    completion_badge="\U0001f977",
    tasks=(
        SecurityTask(
            id="enable-sip",
            title="Enable System Integrity Protection",
            description="Protect system files from modification",
            detailed_instructions=(
                "System Integrity Protection (SIP) is enabled by default on modern macOS.\n"
                "To verify it's enabled:\n\n"
                "1. Open Terminal\n"
                "2. Run: csrutil status\n"
                "3. You should see \"System Integrity Protection status: enabled\"\n\n"
                "If disabled (not recommended):\n"
                "1. Boot into Recovery Mode (Command+R during startup)\n"
                "2. Open Terminal\n"
                "3. Run: csrutil enable\n"
                "4. Restart normally\n\n"
                "SIP prevents malicious software from modifying system files."
            ),
            category=TaskCategory.SYSTEM,
            difficulty=TaskDifficulty.ADVANCED,
            estimated_time_minutes=20,
            xp_reward=100,
            prerequisites=("Disable Unnecessary Services",),
            verification_command="csrutil status",
            verification_description="Check System Integrity Protection status",
            day=3,
            order=1,
        ),
        SecurityTask(
            id="configure-gatekeeper",
            title="Configure Gatekeeper Settings",
            description="Control which applications can run on your Mac",
            detailed_instructions=(
                _OPEN_SETTINGS
                + "2. Go to Security & Privacy > General\n"
                "3. Under \"Allow apps downloaded from\", select:\n"
                "   - \"App Store and identified developers\" (recommended)\n"
                "   - Avoid \"Anywhere\" unless absolutely necessary\n"
                "4. If you see \"Anywhere\" selected, change it for better security\n"
                "5. Test by trying to run an unsigned app (it should be blocked)\n\n"
                "Gatekeeper prevents unsigned or malicious applications from running."
            ),
            category=TaskCategory.SYSTEM,
            difficulty=TaskDifficulty.INTERMEDIATE,
            estimated_time_minutes=10,
            xp_reward=70,
            prerequisites=("Enable System Integrity Protection",),
            verification_command="spctl --status",
            verification_description="Check Gatekeeper status",
            day=3,
            order=2,
        ),
        SecurityTask(
            id="set-up-network-monitoring",
            title="Set Up Network Monitoring",
            description="Monitor network connections for suspicious activity",
            detailed_instructions=(
                "1. Open Terminal\n"
                "2. Install network monitoring tools:\n"
                "   brew install nmap wireshark (if using Homebrew)\n"
                "3. Create a simple monitoring script:\n"
                "   #!/bin/bash\n"
                "   echo \"Active network connections:\"\n"
                "   netstat -an | grep ESTABLISHED\n"
                "   echo \"Listening ports:\"\n"
                "   netstat -an | grep LISTEN\n"
                "4. Save as ~/network_monitor.sh\n"
                "5. Make executable: chmod +x ~/network_monitor.sh\n"
                "6. Run periodically to check for unusual activity\n\n"
                "Regular monitoring helps detect unauthorized network access."
            ),
            category=TaskCategory.MONITORING,
            difficulty=TaskDifficulty.ADVANCED,
            estimated_time_minutes=25,
            xp_reward=90,
            prerequisites=("Configure DNS for Privacy",),
            verification_command="netstat -an | grep ESTABLISHED | wc -l",
            verification_description="Count active network connections",
            day=3,
            order=3,
        ),
        SecurityTask(
            id="create-security-audit-script",
            title="Create Security Audit Script",
            description="Build a custom security monitoring script",
            detailed_instructions=(
                "1. Open Terminal\n"
                "2. Create a security audit script:\n"
                "   #!/bin/bash\n"
                "   echo \"=== macOS Security Audit ===\"\n"
                "   echo \"FileVault Status:\"\n"
                "   fdesetup status\n"
                "   echo \"Firewall Status:\"\n"
                "   /usr/libexec/ApplicationFirewall/socketfilterfw --getglobalstate\n"
                "   echo \"SIP Status:\"\n"
                "   csrutil status\n"
                "   echo \"Gatekeeper Status:\"\n"
                "   spctl --status\n"
                "   echo \"Recent Login Attempts:\"\n"
                "   last -n 10\n"
                "3. Save as ~/security_audit.sh\n"
                "4. Make executable: chmod +x ~/security_audit.sh\n"
                "5. Run weekly: ./security_audit.sh\n\n"
                "This script helps you regularly check your security posture."
            ),
            category=TaskCategory.MONITORING,
            difficulty=TaskDifficulty.ADVANCED,
            estimated_time_minutes=30,
            xp_reward=120,
            prerequisites=("Set Up Network Monitoring",),
            verification_command="ls -la ~/security_audit.sh",
            verification_description="Check if security audit script exists",
            day=3,
            order=4,
        ),
        SecurityTask(
            id="implement-security-best-practices",
            title="Implement Security Best Practices",
            description="Apply additional security hardening measures",
            detailed_instructions=(
                "1. Disable automatic login:\n"
                "   System Preferences > Users & Groups > Login Options\n"
                "   Set \"Automatic login\" to \"Off\"\n\n"
                "2. Enable secure virtual memory:\n"
                "   sudo pmset -a destroyfvkeyonstandby 1\n"
                "   sudo pmset -a hibernatemode 25\n\n"
                "3. Disable remote access:\n"
                "   System Preferences > Sharing\n"
                "   Uncheck all sharing options unless needed\n\n"
                "4. Set secure file permissions:\n"
                "   sudo chmod 600 ~/.ssh/config\n"
                "   sudo chmod 700 ~/.ssh\n\n"
                "5. Enable secure keyboard entry in Terminal\n\n"
                "These measures provide additional layers of security."
            ),
            category=TaskCategory.GENERAL,
            difficulty=TaskDifficulty.ADVANCED,
            estimated_time_minutes=20,
            xp_reward=110,
            prerequisites=("Create Security Audit Script",),
            verification_command="defaults read com.apple.loginwindow SHOWFULLNAME",
            verification_description="Check if automatic login is disabled",
            day=3,
            order=5,
        ),
    ),
)

DEFAULT_CATALOG = Catalog([DAY_1, DAY_2, DAY_3])
