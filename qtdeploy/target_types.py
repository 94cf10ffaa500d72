"""Custom Pants target types for deployable Qt bundles."""

from __future__ import annotations

from pants.engine.target import (
    COMMON_TARGET_FIELDS,
    StringField,
    StringSequenceField,
    Target,
)


class QtDeployBinariesField(StringSequenceField):
    alias = "binaries"
    default = ()
    help = "Paths of native executables, libraries or plugins whose runtime Qt dependencies are deployed."


class QtDeployQmlModulesField(StringSequenceField):
    alias = "qml_modules"
    default = ()
    help = (
        "QML module URIs (e.g. `QtQuick.Controls`) deployed from the Qt QML import directory, "
        "together with the modules they depend on."
    )


class QtDeployQtModulesField(StringSequenceField):
    alias = "qt_modules"
    default = ()
    help = (
        "Qt modules linked by the application, as `name` or `name=libNameForLinker`. "
        "Their libraries are deployed with their runtime dependencies."
    )


class QtDeployStaticQtModulesField(StringSequenceField):
    alias = "static_qt_modules"
    default = ()
    help = "Qt modules from `qt_modules` that are linked statically or have no library."


class QtDeployQtPluginsField(StringSequenceField):
    alias = "qt_plugins"
    default = ()
    help = "Extra Qt plugins in `plugintype/pluginname` format, e.g. `platforms/qcocoa`."


class QtDeployQrcFilesField(StringSequenceField):
    alias = "qrc_files"
    default = ()
    help = "Resource collection files scanned by qmlimportscanner for QML imports."


class QtDeployDependencyListsField(StringSequenceField):
    alias = "dependency_lists"
    default = ()
    help = (
        "Newline separated lists of already resolved runtime dependencies written by earlier "
        "build phases, e.g. the `runtime_dependencies.txt` of another bundle."
    )


class QtDeployQmlImportsFilesField(StringSequenceField):
    alias = "qml_imports_files"
    default = ()
    help = "JSON files holding qmlimportscanner output from earlier build phases."


class QtDeployQmlImportPathField(StringField):
    alias = "qml_import_path"
    default = None
    help = "Import path handed to qmlimportscanner. Defaults to `[qt-deploy].qml_path`."


class QtDeployInstallRootField(StringField):
    alias = "install_root"
    default = ""
    help = "Root directory of the bundle, relative to the install destination."


class QtDeployBundle(Target):
    alias = "qt_deploy_bundle"
    core_fields = (
        *COMMON_TARGET_FIELDS,
        QtDeployBinariesField,
        QtDeployQmlModulesField,
        QtDeployQtModulesField,
        QtDeployStaticQtModulesField,
        QtDeployQtPluginsField,
        QtDeployQrcFilesField,
        QtDeployDependencyListsField,
        QtDeployQmlImportsFilesField,
        QtDeployQmlImportPathField,
        QtDeployInstallRootField,
    )
    help = "The Qt runtime files (libraries, plugins, QML modules) an application bundle must ship."
