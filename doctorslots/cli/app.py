"""
Main CLI application using Typer.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..adapters.json_store import JsonFileStore
from ..config import AppConfig
from ..domain.exceptions import (
    OutsideWorkingHours,
    SchedulingError,
    SlotConflict,
    ValidationError,
)
from ..domain.models import Appointment, AppointmentRequest
from ..services.scheduling import SchedulingService

app = typer.Typer(
    name="doctorslots",
    help="Book doctor appointments and list free slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level.")]


def _open_service(config_file: Optional[Path], verbose: bool = False) -> SchedulingService:
    """Load configuration, set up logging and open the JSON store."""
    try:
        config = AppConfig.load(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = JsonFileStore(config.data_file)
    return SchedulingService.from_config(config, store)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Translate scheduling errors into a red message and exit code 1."""
    try:
        yield
    except ValidationError as e:
        console.print(f"[bold red]Invalid {e.field}:[/bold red] {escape(e.message)}")
        raise typer.Exit(1)
    except OutsideWorkingHours as e:
        console.print("[bold red]Appointment is outside of working hours.[/bold red]")
        console.print(f"   Requested: {e.candidate}")
        console.print(f"   Working hours: {e.working_interval}")
        raise typer.Exit(1)
    except SlotConflict as e:
        console.print(
            "[bold red]Time slot is not available.[/bold red] Please choose a different time."
        )
        for interval in e.conflicting_intervals:
            console.print(f"   Conflicts with: {interval}")
        raise typer.Exit(1)
    except SchedulingError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


def _print_appointment(service: SchedulingService, appointment: Appointment) -> None:
    clock = service.clock
    console.print(f"   ID: [bold]{appointment.id}[/bold]")
    console.print(f"   Doctor: {appointment.doctor_id}")
    console.print(
        f"   Time: {clock.format_local(appointment.date)} - "
        f"{clock.format_local(appointment.end_time)} ({appointment.duration} min.)"
    )
    console.print(f"   Type: {escape(appointment.appointment_type)}")
    console.print(f"   Patient: {escape(appointment.patient_name)}")
    if appointment.notes:
        console.print(f"   Notes: {escape(appointment.notes)}")


@app.command()
def doctors(config_file: ConfigOption = None, verbose: VerboseOption = False):
    """
    List all doctors.
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        doctor_list = service.list_doctors()

    if not doctor_list:
        console.print("[yellow]No doctors registered.[/yellow]")
        return

    table = Table(title="Doctors", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold yellow")
    table.add_column("Specialization")
    table.add_column("Working hours")

    for doctor in doctor_list:
        table.add_row(doctor.id, doctor.name, doctor.specialization, str(doctor.working_hours))

    console.print()
    console.print(table)
    console.print()


@app.command()
def add_doctor(
    name: Annotated[str, typer.Argument(help="Doctor's name")],
    specialization: Annotated[str, typer.Option("--specialization", "-s", help="Specialization")],
    start: Annotated[str, typer.Option("--start", help="Working hours start (HH:MM, local)")],
    end: Annotated[str, typer.Option("--end", help="Working hours end (HH:MM, local)")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Register a doctor with daily working hours.
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        doctor = service.register_doctor(name, specialization, start, end)

    console.print(f"[green]✓ Doctor created:[/green] {escape(doctor.name)} ([bold]{doctor.id}[/bold])")


@app.command()
def appointments(
    doctor: Annotated[Optional[str], typer.Option("--doctor", "-d", help="Only this doctor's appointments")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List appointments in chronological order.
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        if doctor:
            service.get_doctor(doctor)
        appointment_list = service.list_appointments(doctor)

    if not appointment_list:
        console.print("[yellow]No appointments found.[/yellow]")
        return

    clock = service.clock
    table = Table(title="Appointments", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Doctor")
    table.add_column(f"Start ({clock.name})", style="bold")
    table.add_column("Min.", justify="right")
    table.add_column("Type")
    table.add_column("Patient", style="bold yellow")

    for appointment in appointment_list:
        table.add_row(
            appointment.id,
            appointment.doctor_id,
            clock.format_local(appointment.date),
            str(appointment.duration),
            appointment.appointment_type,
            appointment.patient_name,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def show(
    appointment_id: Annotated[str, typer.Argument(help="Appointment ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Show a single appointment.
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        appointment = service.get_appointment(appointment_id)

    _print_appointment(service, appointment)


@app.command()
def book(
    doctor_id: Annotated[str, typer.Argument(help="Doctor ID")],
    date: Annotated[str, typer.Argument(help="Start, ISO 8601. Without an offset it is read as local time.")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes")],
    appointment_type: Annotated[str, typer.Option("--type", "-t", help="Appointment type")],
    patient: Annotated[str, typer.Option("--patient", "-p", help="Patient name")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Free-text notes")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Book a new appointment.

    Examples:

        doctorslots book 5f2c 2024-11-25T10:00 --duration 30 --type checkup --patient "Asha"
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        appointment = service.create_appointment(
            AppointmentRequest(
                doctor_id=doctor_id,
                date=date,
                duration=duration,
                appointment_type=appointment_type,
                patient_name=patient,
                notes=notes,
            )
        )

    console.print("[bold green]✓ Appointment created successfully[/bold green]")
    _print_appointment(service, appointment)


@app.command()
def reschedule(
    appointment_id: Annotated[str, typer.Argument(help="Appointment ID")],
    doctor_id: Annotated[str, typer.Argument(help="Doctor ID")],
    date: Annotated[str, typer.Argument(help="New start, ISO 8601")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes")],
    appointment_type: Annotated[str, typer.Option("--type", "-t", help="Appointment type")],
    patient: Annotated[str, typer.Option("--patient", "-p", help="Patient name")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Free-text notes")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Replace an appointment with new details (all fields required).
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        appointment = service.update_appointment(
            appointment_id,
            AppointmentRequest(
                doctor_id=doctor_id,
                date=date,
                duration=duration,
                appointment_type=appointment_type,
                patient_name=patient,
                notes=notes,
            ),
        )

    console.print("[bold green]✓ Appointment updated successfully[/bold green]")
    _print_appointment(service, appointment)


@app.command()
def cancel(
    appointment_id: Annotated[str, typer.Argument(help="Appointment ID")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Delete an appointment.
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        service.delete_appointment(appointment_id)

    console.print(f"[green]✓ Appointment {appointment_id} deleted.[/green]")


@app.command()
def slots(
    doctor_id: Annotated[str, typer.Argument(help="Doctor ID")],
    date: Annotated[str, typer.Option("--date", help="Local date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List a doctor's free slots on a date.
    """
    with _reporting_errors():
        service = _open_service(config_file, verbose)
        doctor = service.get_doctor(doctor_id)
        free: List[str] = service.list_available_slots(doctor_id, date)

    console.print(
        f"\n[bold cyan]{escape(doctor.name)}[/bold cyan] · {date} · "
        f"working hours {doctor.working_hours} ({service.clock.name})\n"
    )
    if not free:
        console.print("[yellow]⚠ No free slots on this date.[/yellow]\n")
        return

    console.print(f"[bold green]✓ {len(free)} free slot(s):[/bold green]\n")
    for slot in free:
        console.print(f"  {slot}")
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]doctorslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
